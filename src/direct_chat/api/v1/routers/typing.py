from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from direct_chat.api.deps import CurrentPrincipal, UoWDep
from direct_chat.api.v1.schemas.typing import SetTypingRequest, TypingIndicatorResponse
from direct_chat.services import typing_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["typing"])


@router.put("/{conversation_id}/typing", response_model=TypingIndicatorResponse)
async def set_typing(
    conversation_id: UUID,
    body: SetTypingRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> TypingIndicatorResponse:
    indicator = await typing_service.set_typing(
        conversation_id, principal.user_id, body.is_typing, uow,
    )
    return TypingIndicatorResponse.model_validate(indicator, from_attributes=True)


@router.get("/{conversation_id}/typing", response_model=list[TypingIndicatorResponse])
async def list_typing(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[TypingIndicatorResponse]:
    rows = await typing_service.list_typing(conversation_id, principal.user_id, uow)
    return [TypingIndicatorResponse.model_validate(r, from_attributes=True) for r in rows]
