"""API Routes for GameBin."""

from .collections_router import router as collections_router
from .forms_router import router as forms_router

__all__ = [
    "collections_router",
    "forms_router",
]
