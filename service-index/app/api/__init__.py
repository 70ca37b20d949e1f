"""API subpackage for the index service.

Routers expose endpoints to open, close, inspect and query named indices.
Transport layer remains thin and delegates to ``IndexManager``.
"""
