"""Snapshot storage layer.

This package holds the snapshot model, the on-disk file format, the
mismatch reporter, and the coordinator that arbitrates record/verify runs.
"""
