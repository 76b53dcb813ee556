import uuid
from sqlalchemy.dialects.postgresql import JSONB
from ..extensions import db
from ..utils.clock import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class VotingLink(db.Model):
    __tablename__ = "voting_links"

    STATUS_PENDING = "pending"
    STATUS_SENT = "sent"
    STATUS_USED = "used"
    STATUS_EXPIRED = "expired"
    STATUS_REVOKED = "revoked"
    OPEN_STATUSES = (STATUS_PENDING, STATUS_SENT)
    TERMINAL_STATUSES = (STATUS_USED, STATUS_EXPIRED, STATUS_REVOKED)
    VALID_STATUSES = OPEN_STATUSES + TERMINAL_STATUSES

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # Intended holder (identity module owns the member record)
    member_id = db.Column(db.String(64), nullable=False, index=True)
    member_email = db.Column(db.String(255), nullable=True)

    # Scope of the vote
    election_id = db.Column(db.String(64), nullable=False, index=True)
    chapter = db.Column(db.String(120), nullable=False)

    # Only the verifier is stored; the plaintext token never is
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    used_at = db.Column(db.DateTime, nullable=True)
    used_for_positions = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=True)

    generated_by = db.Column(db.String(64), nullable=False)
    generated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    email_sent = db.Column(db.Boolean, nullable=False, default=False)
    email_sent_at = db.Column(db.DateTime, nullable=True)

    accessed_at = db.Column(db.DateTime, nullable=True)
    access_count = db.Column(db.Integer, nullable=False, default=0)
    last_access_ip = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index("ix_voting_links_member_election", "member_id", "election_id"),
        # At most one open link per (member, election)
        db.Index(
            "uq_voting_links_open_member_election",
            "member_id",
            "election_id",
            unique=True,
            postgresql_where=db.text("status IN ('pending', 'sent')"),
            sqlite_where=db.text("status IN ('pending', 'sent')"),
        ),
    )

    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    def is_valid(self, now=None) -> bool:
        now = now or utcnow()
        return self.is_open() and now < self.expires_at

    def __repr__(self) -> str:
        return f"<VotingLink {self.id} member={self.member_id} election={self.election_id} status={self.status}>"
