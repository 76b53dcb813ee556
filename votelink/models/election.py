import uuid
from ..extensions import db
from ..utils.clock import utcnow


class Election(db.Model):
    """Minimal election record the voting links are scoped to."""

    __tablename__ = "elections"

    STATUS_DRAFT = "DRAFT"
    STATUS_OPEN = "OPEN"
    STATUS_CLOSED = "CLOSED"
    VALID_STATUSES = (STATUS_DRAFT, STATUS_OPEN, STATUS_CLOSED)

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))

    chapter = db.Column(db.String(120), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    opened_at = db.Column(db.DateTime, nullable=True)
    closed_at = db.Column(db.DateTime, nullable=True)

    def open(self):
        if self.status != self.STATUS_DRAFT:
            raise ValueError("Only draft elections can be opened")
        self.status = self.STATUS_OPEN
        self.opened_at = utcnow()

    def close(self):
        if self.status != self.STATUS_OPEN:
            raise ValueError("Only open elections can be closed")
        self.status = self.STATUS_CLOSED
        self.closed_at = utcnow()

    def is_accepting_votes(self, now=None) -> bool:
        now = now or utcnow()
        if self.status != self.STATUS_OPEN:
            return False
        if self.starts_at and now < self.starts_at:
            return False
        if self.ends_at and now >= self.ends_at:
            return False
        return True
