"""Authentication package."""
from .router import router as auth_router

__all__ = ["auth_router"]
