"""Index service package.

Layout:
- ``api``: HTTP endpoints to open, close, inspect and query indices.
- ``registry``: the index manager and multi-index result merging.
- ``runtime``: socket activation and service-local metrics helpers.
"""
