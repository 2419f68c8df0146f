"""Validation-phase rules.

Each per-operation rule lives in ``aarules.rules.checks`` and is discovered
by the registry; the cross-operation bundle rule lives in
``aarules.rules.bundle_conflict``.
"""
