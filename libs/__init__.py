"""Shared libraries for the index service.

Subpackages:
- ``libs.common``: configuration, logging, metrics, and the error taxonomy.
- ``libs.index_store``: search engine abstractions, the Whoosh backend, and
  the durable index location cache.

Usage:
- Import stable, reusable functionality from here to keep service code lean.

Notes:
- Avoid HTTP-specific logic; keep modules cohesive and broadly useful.
"""
