from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from direct_chat.api.deps import get_uow_factory, get_verifier
from direct_chat.application.dto.principal import Principal
from direct_chat.application.exceptions import (
    AppError,
    InvalidArgumentError,
    NotAMemberError,
    NotFoundError,
    TransientStoreError,
)
from direct_chat.application.ports.auth import TokenVerifier
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.domain.value_objects.enums import Collection
from direct_chat.infrastructure.ws.manager import ConnectionManager, Topic
from direct_chat.infrastructure.ws.protocol import (
    MarkReadRequest,
    TopicRequest,
    TypingRequest,
    WsInbound,
    WsOutbound,
)
from direct_chat.services import conversation_service, message_service, typing_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()

_SCOPED = (Collection.MESSAGES, Collection.TYPING_INDICATORS)

_ERROR_CODES: dict[type[AppError], str] = {
    InvalidArgumentError: "invalid_data",
    NotAMemberError: "forbidden",
    NotFoundError: "not_found",
    TransientStoreError: "unavailable",
}


def get_manager() -> ConnectionManager:
    return manager


async def _authenticate(verifier: TokenVerifier, token: str) -> Principal | None:
    try:
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
    verifier: TokenVerifier = Depends(get_verifier),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> None:
    principal = await _authenticate(verifier, token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    pkey = principal.principal_key
    await manager.connect(websocket, pkey, principal.user_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{pkey}",
    )
    try:
        await _read_loop(websocket, principal, uow_factory)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", pkey)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(websocket, pkey)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await _send(ws, "pong")
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("WS heartbeat stopped", exc_info=True)


async def _send(ws: WebSocket, type_: str, data: dict[str, Any] | None = None) -> None:
    await ws.send_text(WsOutbound(type=type_, data=data or {}).model_dump_json())


async def _read_loop(ws: WebSocket, principal: Principal, uow_factory: UnitOfWorkFactory) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except ValidationError:
            await _send(ws, "error", {"code": "invalid_payload"})
            continue

        try:
            if msg.type == "ping":
                await _send(ws, "pong")
            elif msg.type == "subscribe":
                await _handle_subscribe(ws, principal, msg.data, uow_factory)
            elif msg.type == "unsubscribe":
                await _handle_unsubscribe(ws, msg.data)
            elif msg.type == "typing":
                await _handle_typing(principal, msg.data, uow_factory)
            elif msg.type == "mark_read":
                await _handle_mark_read(principal, msg.data, uow_factory)
            else:
                await _send(ws, "error", {"code": "unknown_type", "type": msg.type})
        except ValidationError as exc:
            await _send(ws, "error", {"code": "invalid_data", "detail": str(exc)})
        except AppError as exc:
            code = _ERROR_CODES.get(type(exc), "error")
            await _send(ws, "error", {"code": code, "type": msg.type, "detail": exc.detail})


async def _handle_subscribe(
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    uow_factory: UnitOfWorkFactory,
) -> None:
    req = TopicRequest.model_validate(data)
    if req.collection in _SCOPED and req.conversation_id is None:
        raise InvalidArgumentError(f"{req.collection} subscriptions need a conversation_id")
    if req.conversation_id is not None:
        async with uow_factory() as uow:
            await conversation_service.get_conversation(req.conversation_id, principal.user_id, uow)

    manager.subscribe(ws, Topic(req.collection, req.conversation_id))
    await _send(ws, "subscribed", req.model_dump(mode="json"))


async def _handle_unsubscribe(ws: WebSocket, data: dict[str, Any]) -> None:
    req = TopicRequest.model_validate(data)
    manager.unsubscribe(ws, Topic(req.collection, req.conversation_id))
    await _send(ws, "unsubscribed", req.model_dump(mode="json"))


async def _handle_typing(
    principal: Principal,
    data: dict[str, Any],
    uow_factory: UnitOfWorkFactory,
) -> None:
    req = TypingRequest.model_validate(data)
    async with uow_factory() as uow:
        await typing_service.set_typing(
            req.conversation_id, principal.user_id, req.is_typing, uow,
        )


async def _handle_mark_read(
    principal: Principal,
    data: dict[str, Any],
    uow_factory: UnitOfWorkFactory,
) -> None:
    req = MarkReadRequest.model_validate(data)
    async with uow_factory() as uow:
        await message_service.mark_read(req.message_id, principal.user_id, uow)
