"""Tests for the index service.

Unit tests cover configuration, logging, metrics, the location cache, the
Whoosh backend and the index manager; API tests drive the FastAPI app
in-process with real Whoosh indices built in temporary directories.
"""
