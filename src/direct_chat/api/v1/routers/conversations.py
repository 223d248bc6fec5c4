from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from direct_chat.api.deps import CurrentPrincipal, UoWDep
from direct_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
)
from direct_chat.services import conversation_service, directory_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse)
async def resolve_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.resolve_conversation(
        principal.user_id, body.other_user_id, uow,
    )
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.get("", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationSummaryResponse]:
    summaries = await directory_service.list_conversations(principal.user_id, uow)
    return [
        ConversationSummaryResponse.model_validate(s, from_attributes=True) for s in summaries
    ]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal.user_id, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)
