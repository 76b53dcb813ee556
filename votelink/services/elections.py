from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import ElectionNotFound, ElectionNotOpen, StorageUnavailable
from ..models.election import Election
from ..utils.clock import utcnow


class ElectionDirectory:
    """Answers "does this election exist and is it accepting votes"."""

    def __init__(self, session):
        self.session = session

    def get(self, election_id: str) -> Election | None:
        try:
            return self.session.get(Election, str(election_id))
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageUnavailable(details={"action": "get_election"}) from e

    def require(self, election_id: str) -> Election:
        election = self.get(election_id)
        if election is None:
            raise ElectionNotFound(details={"election_id": str(election_id)})
        return election

    def ensure_open(self, election_id: str, now=None) -> Election:
        election = self.require(election_id)
        if not election.is_accepting_votes(now or utcnow()):
            raise ElectionNotOpen(
                details={"election_id": election.id, "status": election.status}
            )
        return election
