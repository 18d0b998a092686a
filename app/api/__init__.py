"""HTTP surface: /ni/token and /ni/rooms."""
from fastapi import APIRouter

from .routes import get_store, room_router, token_router

router = APIRouter()
router.include_router(token_router)
router.include_router(room_router)

__all__ = ["router", "get_store"]
