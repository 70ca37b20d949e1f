"""Common utilities shared across services.

Includes:
- ``config``: Pydantic-based service configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.
- ``errors``: the closed ``ErrorKind`` taxonomy and its exception classes.

Import pattern:
- from libs.common.config import IndexServiceConfig
- from libs.common.logging import configure_logging
"""
