from __future__ import annotations

import logging
import uuid

from direct_chat.application.exceptions import InvalidArgumentError, NotFoundError
from direct_chat.application.policies.permissions import require_id
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork
from direct_chat.domain.entities.profile import Profile
from direct_chat.domain.events.change import ChangeEvent, row_of
from direct_chat.domain.value_objects.enums import ChangeType, Collection

logger = logging.getLogger(__name__)

_clock = SystemClock()

MIN_SEARCH_LENGTH = 2


async def get_profile(user_id: uuid.UUID, uow: UnitOfWork) -> Profile:
    profile = await uow.profiles.get_by_id(require_id(user_id, "user_id"))
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


async def list_profiles(uow: UnitOfWork) -> list[Profile]:
    return await uow.profiles.list_all()


async def find_user(term: str, uow: UnitOfWork) -> Profile | None:
    """Exact email, then exact username, then the first fuzzy match.

    Fuzzy matches are ordered by (username, id) so the pick is stable.
    """
    term = (term or "").strip()
    if not term:
        return None

    profile = await uow.profiles.get_by_email(term)
    if profile is not None:
        return profile
    profile = await uow.profiles.get_by_username(term)
    if profile is not None:
        return profile

    fuzzy = await uow.profiles.search(term, limit=1)
    return fuzzy[0] if fuzzy else None


async def search_users(term: str, uow: UnitOfWork, *, limit: int = 10) -> list[Profile]:
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise InvalidArgumentError(f"Search term must be at least {MIN_SEARCH_LENGTH} characters")
    return await uow.profiles.search(term, limit=limit)


async def update_presence(
    user_id: uuid.UUID,
    is_online: bool,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Profile:
    user_id = require_id(user_id, "user_id")
    profile = await uow.profiles_w.set_presence(user_id, is_online, clock.now())
    if profile is None:
        raise NotFoundError("Profile not found")
    await uow.outbox.add(ChangeEvent(Collection.PROFILES, ChangeType.UPDATE, row_of(profile)))
    await uow.commit()
    return profile


async def upsert_identity(
    user_id: uuid.UUID,
    username: str,
    email: str | None,
    avatar_url: str | None,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Profile:
    """Mirror an identity-service account into the profile store."""
    user_id = require_id(user_id, "user_id")
    username = (username or "").strip()
    if not username:
        raise InvalidArgumentError("username must not be empty")

    existed = await uow.profiles.get_by_id(user_id) is not None
    profile = await uow.profiles_w.upsert_identity(
        user_id, username, email or None, avatar_url or None, clock.now(),
    )
    change = ChangeType.UPDATE if existed else ChangeType.INSERT
    await uow.outbox.add(ChangeEvent(Collection.PROFILES, change, row_of(profile)))
    await uow.commit()
    logger.info("Profile %s synced from identity event (%s)", user_id, change)
    return profile
