from functools import wraps
from flask import abort
from flask_jwt_extended import get_jwt, get_jwt_identity

from ..services import voting_links

SYSTEM_ADMIN = "SYSTEM_ADMIN"
CHAPTER_ADMIN = "CHAPTER_ADMIN"
ADMIN_ROLES = (SYSTEM_ADMIN, CHAPTER_ADMIN)


def roles_required(*allowed_roles: str):
    """
    Require JWT and restrict endpoint access to specific roles.
    Use with @jwt_required() above it.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            claims = get_jwt()
            role = claims.get("role")
            if role not in allowed_roles:
                abort(403, description="Insufficient permissions")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def current_actor():
    """(user_id, role) of the JWT on the current request."""
    return get_jwt_identity(), (get_jwt() or {}).get("role")


def assert_chapter_access(chapter: str) -> None:
    """Chapter admins may only act on their own chapter's elections."""
    claims = get_jwt() or {}
    if claims.get("role") == SYSTEM_ADMIN:
        return
    if claims.get("chapter") != chapter:
        abort(403, description="Not an administrator of this chapter")


def chapter_election(election_id: str):
    """Load an election the caller administers; ElectionNotFound (404) or 403 otherwise."""
    election = voting_links.elections.require(election_id)
    assert_chapter_access(election.chapter)
    return election
