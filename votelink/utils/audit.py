from typing import Optional, Dict, Any
from flask import current_app, request
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity, get_jwt
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from ..extensions import db
from ..models.audit_log import AuditLog

def _optional_actor():
    """
    Returns (user_id, role) or (None, None).
    Voters redeeming a link have no JWT.
    """
    try:
        verify_jwt_in_request(optional=True)
        claims = get_jwt()
        return get_jwt_identity(), claims.get("role")
    except (JWTExtendedException, PyJWTError):
        return None, None

def client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr

def audit_log(
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    election_id: Optional[str] = None,
    chapter: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
) -> None:
    user_id, role = _optional_actor()
    ua = request.headers.get("User-Agent")

    log = AuditLog(
        actor_id=str(user_id) if user_id else None,
        actor_role=role,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else None,
        election_id=str(election_id) if election_id else None,
        chapter=chapter,
        ip_address=client_ip(),
        user_agent=ua[:255] if ua else None,
        details=details or None,
        success=success,
    )
    db.session.add(log)

def safe_audit(action: str, **kwargs) -> None:
    """
    Best-effort audit in its own commit; never breaks the endpoint.
    """
    try:
        audit_log(action, **kwargs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed: %s", action)
