from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from direct_chat.api.deps import CurrentPrincipal, UoWDep
from direct_chat.api.v1.schemas.profile import ProfileResponse, SetPresenceRequest
from direct_chat.application.exceptions import NotFoundError
from direct_chat.services import profile_service

router = APIRouter(prefix="/api/v1/chat", tags=["profiles"])


@router.get("/profiles", response_model=list[ProfileResponse])
async def list_profiles(
    _principal: CurrentPrincipal,
    uow: UoWDep,
    q: str | None = Query(None),
    limit: int = Query(10, ge=1, le=50),
) -> list[ProfileResponse]:
    if q is None:
        profiles = await profile_service.list_profiles(uow)
    else:
        profiles = await profile_service.search_users(q, uow, limit=limit)
    return [ProfileResponse.model_validate(p, from_attributes=True) for p in profiles]


@router.get("/profiles/lookup", response_model=ProfileResponse)
async def lookup_profile(
    _principal: CurrentPrincipal,
    uow: UoWDep,
    term: str = Query(...),
) -> ProfileResponse:
    profile = await profile_service.find_user(term, uow)
    if profile is None:
        raise NotFoundError("No user matches")
    return ProfileResponse.model_validate(profile, from_attributes=True)


@router.get("/profiles/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UUID,
    _principal: CurrentPrincipal,
    uow: UoWDep,
) -> ProfileResponse:
    profile = await profile_service.get_profile(user_id, uow)
    return ProfileResponse.model_validate(profile, from_attributes=True)


@router.put("/presence", response_model=ProfileResponse)
async def set_presence(
    body: SetPresenceRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ProfileResponse:
    profile = await profile_service.update_presence(principal.user_id, body.is_online, uow)
    return ProfileResponse.model_validate(profile, from_attributes=True)
