"""Core building blocks.

This package holds configuration, settings discovery, errors, logging,
and the immutable ordered map shared by the storage layer.
"""
