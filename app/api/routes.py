from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..domain.store import TokenStore
from ..domain.validation import ValidationFailed
from ..logging_conf import get_logger
from ..service import relay_service
from .models import (
    ClearRoomResponse,
    ErrorResponse,
    RefreshTokenResponse,
    RegisterTokenRequest,
    RegisterTokenResponse,
    RoomItem,
    RoomListResponse,
    TokenItem,
    TokenListResponse,
    UnregisterResponse,
    to_iso_z,
)

token_router = APIRouter(prefix="/ni/token", tags=["token"])
room_router = APIRouter(prefix="/ni/rooms", tags=["rooms"])
logger = get_logger("api")

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


def get_store(request: Request) -> TokenStore:
    """Return the TokenStore the application was built with."""
    return request.app.state.token_store


def _server_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "server_error", "message": message},
    )


async def _read_register_body(request: Request) -> RegisterTokenRequest:
    # A body that isn't JSON at all raises here and is reported as a server error.
    body = await request.json()
    try:
        return RegisterTokenRequest.model_validate(body)
    except ValidationError as e:
        raise ValidationFailed(relay_service.REGISTER_REQUIRED) from e


@token_router.post(
    "",
    response_model=RegisterTokenResponse,
    responses=_ERRORS,
    summary="Register or overwrite a token",
)
async def register_token(request: Request, store: TokenStore = Depends(get_store)):
    """Store the caller's token in a room for 30 minutes."""
    try:
        req = await _read_register_body(request)
        entry = relay_service.register_token(
            store,
            user_id=req.user_id,
            room=req.room,
            token=req.token,
            display_name=req.display_name,
        )
    except ValidationFailed:
        raise
    except Exception:
        logger.exception("token.register_failed", extra={"event": "token_register_failed"})
        return _server_error("Failed to register token")
    return RegisterTokenResponse(
        user_id=entry.user_id, room=entry.room, expires_at=to_iso_z(entry.expires_at)
    )


@token_router.get(
    "",
    response_model=TokenListResponse,
    responses=_ERRORS,
    summary="List live tokens in a room",
)
async def list_tokens(
    room: str | None = Query(None, description="Room to list"),
    exclude_user_id: str | None = Query(
        None, alias="excludeUserId", description="Leave this user's own entry out"
    ),
    store: TokenStore = Depends(get_store),
) -> TokenListResponse:
    entries = relay_service.list_tokens(store, room=room, exclude_user_id=exclude_user_id)
    return TokenListResponse(
        tokens=[
            TokenItem(user_id=e.user_id, display_name=e.display_name, token=e.token)
            for e in entries
        ]
    )


@token_router.delete(
    "",
    response_model=UnregisterResponse,
    responses=_ERRORS,
    summary="Remove a token",
)
async def unregister_token(
    user_id: str | None = Query(None, alias="userId"),
    room: str | None = Query(None),
    store: TokenStore = Depends(get_store),
) -> UnregisterResponse:
    deleted = relay_service.unregister_token(store, user_id=user_id, room=room)
    return UnregisterResponse(deleted=deleted)


@token_router.post(
    "/refresh",
    response_model=RefreshTokenResponse,
    responses=_ERRORS,
    summary="Re-register a token to extend its expiry",
)
async def refresh_token(request: Request, store: TokenStore = Depends(get_store)):
    try:
        req = await _read_register_body(request)
        entry = relay_service.refresh_token(
            store,
            user_id=req.user_id,
            room=req.room,
            token=req.token,
            display_name=req.display_name,
        )
    except ValidationFailed:
        raise
    except Exception:
        logger.exception("token.refresh_failed", extra={"event": "token_refresh_failed"})
        return _server_error("Failed to refresh token")
    return RefreshTokenResponse(expires_at=to_iso_z(entry.expires_at))


@room_router.get("", response_model=RoomListResponse, summary="List active rooms")
async def list_rooms(store: TokenStore = Depends(get_store)) -> RoomListResponse:
    rooms = relay_service.list_rooms(store)
    return RoomListResponse(rooms=[RoomItem(name=r.name, user_count=r.user_count) for r in rooms])


@room_router.delete(
    "/{name:path}",
    response_model=ClearRoomResponse,
    responses=_ERRORS,
    summary="Remove every token in a room",
)
async def clear_room(name: str, store: TokenStore = Depends(get_store)) -> ClearRoomResponse:
    count = relay_service.clear_room(store, name=name)
    return ClearRoomResponse(deleted_tokens=count)
