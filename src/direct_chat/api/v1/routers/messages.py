from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response

from direct_chat.api.deps import CurrentPrincipal, UoWDep
from direct_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from direct_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[MessageResponse]:
    messages = await message_service.list_messages(conversation_id, principal.user_id, uow)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        conversation_id, principal.user_id, body.content, uow,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse | Response:
    msg = await message_service.mark_read(message_id, principal.user_id, uow)
    if msg is None:
        # the author's own message: nothing to mark
        return Response(status_code=204)
    return MessageResponse.model_validate(msg, from_attributes=True)
