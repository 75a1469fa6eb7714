from __future__ import annotations

from rpos.application.dto.responses import UserResponse
from rpos.domain.user.entities import ROLE_PERMISSIONS, User


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        userId=str(user.user_id),
        name=user.name,
        role=user.role.value,
        isActive=user.is_active,
        permissions=sorted(permission.value for permission in ROLE_PERMISSIONS[user.role]),
        createdAt=user.created_at,
    )
