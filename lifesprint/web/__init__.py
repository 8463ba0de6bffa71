"""HTTP interface."""

from .routes import router, get_owner_id

__all__ = ["router", "get_owner_id"]
