"""FastAPI dependencies for the course service."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from app.prerequisites.cache import PrerequisiteCache, RedisPrerequisiteCache
from shared.auth.dependencies import get_current_user_required
from shared.constants import Role
from shared.models.user import CurrentUser

_EDITOR_ROLES = frozenset({Role.INSTRUCTOR, Role.ADMIN, Role.SUPER_ADMIN})


def get_prerequisite_cache(request: Request) -> PrerequisiteCache:
    """Redis-backed edge-list cache built in the app lifespan."""
    return RedisPrerequisiteCache(
        request.app.state.redis, ttl=request.app.state.settings.prerequisite_cache_ttl_secs,
    )


async def require_course_editor(
    user: CurrentUser = Depends(get_current_user_required),
) -> CurrentUser:
    """Prerequisite edges may only be changed by instructors and admins."""
    if not user.has_any_role(_EDITOR_ROLES):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor or admin role required.",
        )
    return user
