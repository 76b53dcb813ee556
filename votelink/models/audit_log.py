import uuid
from sqlalchemy.dialects.postgresql import JSONB
from ..extensions import db
from ..utils.clock import utcnow

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Who performed the action (null for anonymous voters / system jobs)
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    actor_role = db.Column(db.String(30), nullable=True)

    # What happened
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. VOTE_LINK_GENERATED
    entity_type = db.Column(db.String(50), nullable=True, index=True)  # e.g. LINK, ELECTION
    entity_id = db.Column(db.String(64), nullable=True, index=True)

    # Vote scope
    election_id = db.Column(db.String(64), nullable=True, index=True)
    chapter = db.Column(db.String(120), nullable=True)

    # Request context
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    details = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=True)
    success = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
