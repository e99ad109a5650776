"""API Routes for the client portal."""

from clientportal.infrastructure.api.routes.auth_router import router as auth_router

__all__ = ["auth_router"]
