from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from diet_chat.api.deps import authenticate
from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import AppError
from diet_chat.application.policies.permissions import assert_conversation_access
from diet_chat.config import settings
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.infrastructure.db.uow import uow_scope
from diet_chat.infrastructure.ws.manager import ConnectionManager
from diet_chat.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


async def _authenticate(token: str) -> Principal | None:
    try:
        return await authenticate(token)
    except AppError:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/conversations")
async def ws_conversations(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await manager.connect(websocket)
    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{principal.principal_key}",
    )
    try:
        await _read_loop(websocket, principal)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.principal_key)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(websocket)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound.frame("pong"))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("WS heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, principal: Principal) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except ValueError:
            await ws.send_text(WsOutbound.frame("error", code="invalid_payload"))
            continue

        if msg.type == "ping":
            await ws.send_text(WsOutbound.frame("pong"))
        elif msg.type in ("subscribe", "unsubscribe"):
            try:
                key = msg.conversation_key()
            except (KeyError, TypeError, ValueError):
                await ws.send_text(WsOutbound.frame("error", code="invalid_key"))
                continue
            if msg.type == "subscribe":
                await _handle_subscribe(ws, principal, key)
            else:
                manager.unsubscribe(ws, key)
        else:
            await ws.send_text(WsOutbound.frame("error", code="unknown_type", type=msg.type))


async def _handle_subscribe(ws: WebSocket, principal: Principal, key: ConversationKey) -> None:
    try:
        async with uow_scope() as uow:
            await assert_conversation_access(principal, key, uow.links)
    except AppError as exc:
        await ws.send_text(WsOutbound.frame("error", code="subscribe_denied", detail=exc.detail))
        return
    manager.subscribe(ws, key)
    await ws.send_text(WsOutbound.frame("subscribed", client_id=key.client_id, diet_id=key.diet_id))
