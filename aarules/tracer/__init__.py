"""Trace partitioning and address-association helpers."""
