"""HTTP query boundary over the snapshot cache and the audit log."""

from .error_handlers import register_error_handlers
from .routes import router

__all__ = ["register_error_handlers", "router"]
