"""Batch file serialization and storage layer.

This module writes and reads Avro batch containers, computes packet
file digests, and moves batch bytes to local or object storage.
"""
