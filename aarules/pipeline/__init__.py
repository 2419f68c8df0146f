"""Validation orchestration for single operations and bundles."""
