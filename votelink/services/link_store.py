import enum
from contextlib import contextmanager

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..exceptions import DuplicateVerifier, OpenLinkConflict, StorageUnavailable
from ..models.voting_link import VotingLink
from ..utils.clock import utcnow


class TransitionResult(enum.Enum):
    SUCCESS = "success"
    ALREADY_USED = "already_used"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


class LinkStore:
    """
    Repository for VotingLink rows.

    Every public method runs in its own transaction and commits before
    returning. State changes are single conditional UPDATE statements, so the
    database (not an in-process lock) decides which of several concurrent
    requests wins.
    """

    def __init__(self, session):
        self.session = session

    @contextmanager
    def _storage(self, action: str):
        try:
            yield
        except (DuplicateVerifier, OpenLinkConflict):
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageUnavailable(details={"action": action}) from e

    # -- creation / lookup ----------------------------------------------------

    def create(self, link: VotingLink) -> VotingLink:
        with self._storage("create"):
            try:
                self.session.add(link)
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                # Two unique indexes can fire: the verifier and the open-link pair
                if self.find_by_hash(link.token_hash) is not None:
                    raise DuplicateVerifier() from e
                raise OpenLinkConflict(
                    details={"member_id": link.member_id, "election_id": link.election_id}
                ) from e
        return link

    def get(self, link_id: str) -> VotingLink | None:
        with self._storage("get"):
            return self.session.get(VotingLink, link_id)

    def find_by_hash(self, token_hash: str) -> VotingLink | None:
        with self._storage("find_by_hash"):
            return self.session.execute(
                select(VotingLink).where(VotingLink.token_hash == token_hash)
            ).scalar_one_or_none()

    def find_active_by_hash(self, token_hash: str) -> VotingLink | None:
        with self._storage("find_active_by_hash"):
            return self.session.execute(
                select(VotingLink).where(
                    VotingLink.token_hash == token_hash,
                    VotingLink.status.in_(VotingLink.OPEN_STATUSES),
                )
            ).scalar_one_or_none()

    def find_open_for_member(self, member_id: str, election_id: str) -> list[VotingLink]:
        with self._storage("find_open_for_member"):
            return list(
                self.session.execute(
                    select(VotingLink).where(
                        VotingLink.member_id == member_id,
                        VotingLink.election_id == election_id,
                        VotingLink.status.in_(VotingLink.OPEN_STATUSES),
                    )
                ).scalars()
            )

    def list_for_election(self, election_id: str, status: str | None = None, page: int = 1, per_page: int = 50):
        """Returns (links, total) newest first."""
        criteria = [VotingLink.election_id == election_id]
        if status:
            criteria.append(VotingLink.status == status)

        with self._storage("list_for_election"):
            total = self.session.execute(
                select(func.count(VotingLink.id)).where(*criteria)
            ).scalar() or 0
            links = list(
                self.session.execute(
                    select(VotingLink)
                    .where(*criteria)
                    .order_by(VotingLink.created_at.desc())
                    .limit(per_page)
                    .offset((page - 1) * per_page)
                ).scalars()
            )
            return links, total

    # -- state transitions ----------------------------------------------------

    def transition_to_used(self, token_hash: str, used_for_positions=None, now=None) -> TransitionResult:
        now = now or utcnow()
        with self._storage("transition_to_used"):
            result = self.session.execute(
                update(VotingLink)
                .where(
                    VotingLink.token_hash == token_hash,
                    VotingLink.status.in_(VotingLink.OPEN_STATUSES),
                    VotingLink.expires_at > now,
                )
                .values(
                    status=VotingLink.STATUS_USED,
                    used_at=now,
                    used_for_positions=list(used_for_positions or []),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                self.session.commit()
                return TransitionResult.SUCCESS

            # Lost the update: read back why, inside the same transaction
            row = self.session.execute(
                select(VotingLink.status, VotingLink.expires_at).where(VotingLink.token_hash == token_hash)
            ).first()
            self.session.commit()

        if row is None or row.status == VotingLink.STATUS_REVOKED:
            return TransitionResult.NOT_FOUND
        if row.status == VotingLink.STATUS_USED:
            return TransitionResult.ALREADY_USED
        return TransitionResult.EXPIRED

    def _set_status(self, action: str, criteria, status: str, now=None) -> int:
        now = now or utcnow()
        with self._storage(action):
            result = self.session.execute(
                update(VotingLink)
                .where(VotingLink.status.in_(VotingLink.OPEN_STATUSES), *criteria)
                .values(status=status, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount

    def revoke(self, token_hash: str) -> bool:
        """Idempotent; returns True only when an open link was revoked."""
        return self._set_status("revoke", [VotingLink.token_hash == token_hash], VotingLink.STATUS_REVOKED) == 1

    def revoke_open_for_member(self, member_id: str, election_id: str) -> int:
        return self._set_status(
            "revoke_open_for_member",
            [VotingLink.member_id == member_id, VotingLink.election_id == election_id],
            VotingLink.STATUS_REVOKED,
        )

    def revoke_open_for_election(self, election_id: str) -> int:
        return self._set_status(
            "revoke_open_for_election",
            [VotingLink.election_id == election_id],
            VotingLink.STATUS_REVOKED,
        )

    def expire(self, token_hash: str, now=None) -> bool:
        now = now or utcnow()
        return self._set_status(
            "expire",
            [VotingLink.token_hash == token_hash, VotingLink.expires_at <= now],
            VotingLink.STATUS_EXPIRED,
            now=now,
        ) == 1

    def expire_overdue(self, now=None) -> int:
        now = now or utcnow()
        return self._set_status(
            "expire_overdue", [VotingLink.expires_at <= now], VotingLink.STATUS_EXPIRED, now=now
        )

    def mark_sent(self, token_hash: str, now=None) -> bool:
        """Delivery callback. pending -> sent; delivery flags are set on any open link."""
        now = now or utcnow()
        with self._storage("mark_sent"):
            result = self.session.execute(
                update(VotingLink)
                .where(
                    VotingLink.token_hash == token_hash,
                    VotingLink.status.in_(VotingLink.OPEN_STATUSES),
                )
                .values(
                    status=VotingLink.STATUS_SENT,
                    email_sent=True,
                    email_sent_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount == 1

    # -- telemetry / maintenance ------------------------------------------------

    def record_access(self, token_hash: str, ip: str | None = None, now=None) -> None:
        """Counts a lookup attempt; applies to links in any status."""
        now = now or utcnow()
        with self._storage("record_access"):
            self.session.execute(
                update(VotingLink)
                .where(VotingLink.token_hash == token_hash)
                .values(
                    access_count=VotingLink.access_count + 1,
                    accessed_at=now,
                    last_access_ip=ip[:64] if ip else None,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()

    def purge_overdue(self, before) -> int:
        """
        Deletes every link whose deadline passed before `before`, terminal or
        still open. None of them can be redeemed any more.
        """
        with self._storage("purge_overdue"):
            result = self.session.execute(
                delete(VotingLink)
                .where(VotingLink.expires_at < before)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount
