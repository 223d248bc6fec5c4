from __future__ import annotations

from direct_chat.domain.entities.profile import Profile
from direct_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        username=model.username,
        avatar_url=model.avatar_url,
        email=model.email,
        is_online=model.is_online,
        last_seen=model.last_seen,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
