"""HTTP routes for push delivery."""

from .routes import router

__all__ = ["router"]
