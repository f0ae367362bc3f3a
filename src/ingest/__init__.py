"""Batch ingestion orchestration.

This module reads device data shares and drives the filter, split,
serialize, digest, and header stages for one collection window.
"""
