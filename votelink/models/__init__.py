from .voting_link import VotingLink  # noqa: F401
from .election import Election  # noqa: F401
from .audit_log import AuditLog  # noqa: F401

# Import ALL models so SQLAlchemy registers them

__all__ = [
    "VotingLink",
    "Election",
    "AuditLog",
]
