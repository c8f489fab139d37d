"""Chat room WebSocket.

Each inbound ``{"type": "chat"}`` frame is one turn. Turns are rate limited
per client inside the room partition before any retrieval or LLM work
starts; a denied turn gets an error frame with a countdown and the socket
stays open.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.core.errors import AppError
from app.core.logging import clear_request_id, set_request_id
from app.core.rate_limit import check_websocket_turn
from app.schemas.chat import ChatChunkFrame, ChatDoneFrame, ChatErrorFrame, ChatTurnFrame

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

CHAT_TURN_BUCKET = "chat-turn"


def _sources(context) -> list[str]:
    return [match["metadata"].get("url") or match["id"] for match in context]


async def _send(websocket: WebSocket, frame) -> None:
    await websocket.send_json(frame.model_dump(by_alias=True, exclude_none=True))


@router.websocket("/party/chat/{room_id}")
async def chat_room(websocket: WebSocket, room_id: str) -> None:
    await websocket.accept()

    chat = websocket.app.state.services.chat
    conversation = chat.new_conversation()
    partition = f"room:{room_id}"

    try:
        while True:
            raw = await websocket.receive_text()
            set_request_id(str(uuid.uuid4()))
            try:
                try:
                    turn = ChatTurnFrame.model_validate_json(raw)
                except ValidationError:
                    await _send(websocket, ChatErrorFrame(code="invalid_frame", message="Expected a chat frame"))
                    continue

                try:
                    decision = await check_websocket_turn(websocket, CHAT_TURN_BUCKET, partition=partition)
                except AppError as exc:
                    await _send(websocket, ChatErrorFrame(code=exc.code, message=exc.message))
                    continue

                if not decision.allowed:
                    await _send(
                        websocket,
                        ChatErrorFrame(
                            code="rate_limited",
                            message=decision.countdown_message(),
                            retry_after=decision.retry_after_seconds,
                            reason=decision.result.reason,
                            kind=decision.kind,
                        ),
                    )
                    continue

                conversation.add("user", turn.content)
                context = await chat.retrieve_context(turn.content)

                parts: list[str] = []
                try:
                    async for chunk in chat.stream_reply(conversation, model=turn.model, context=context):
                        parts.append(chunk)
                        await _send(websocket, ChatChunkFrame(content=chunk))
                except AppError as exc:
                    logger.warning("chat.turn_failed", extra={"error_code": exc.code, "room_id": room_id})
                    await _send(websocket, ChatErrorFrame(code=exc.code, message=exc.message))
                    continue

                await _send(websocket, ChatDoneFrame(content="".join(parts), sources=_sources(context)))
            finally:
                clear_request_id()
    except WebSocketDisconnect:
        logger.info("chat.disconnected", extra={"room_id": room_id})
