"""
Document integrity service for Momofin Core.

This module provides:
- Keyed (HMAC) fingerprints of files and streams
- Endpoints to fingerprint and verify uploaded documents
"""
