"""Validation-phase rule checker for account-abstraction user operations.

Classifies an already-recorded validation trace against the opcode, call
and storage-access rules, for single operations and for bundles.
"""

__version__ = "0.1.0"
