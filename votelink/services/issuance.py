from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable

from flask import current_app

from ..exceptions import DuplicateVerifier, OpenLinkConflict, VotingLinkError
from ..models.voting_link import VotingLink
from ..utils.clock import to_naive_utc, utcnow
from .elections import ElectionDirectory
from .link_store import LinkStore
from .token_codec import TokenCodec


@dataclass(frozen=True)
class IssuedLink:
    """Plaintext token plus the stored record. The token is not kept anywhere else."""

    token: str
    link: VotingLink


@dataclass
class BulkIssue:
    """Outcome of issuing for many members; one member failing does not undo the others."""

    issued: list[IssuedLink] = field(default_factory=list)
    # Open links left in place, without a token (it cannot be recovered)
    existing: list[VotingLink] = field(default_factory=list)
    failed: list[tuple[str, VotingLinkError]] = field(default_factory=list)


class IssuanceService:
    # One retry with fresh randomness, then give up
    MAX_ATTEMPTS = 2

    def __init__(
        self,
        store: LinkStore,
        codec: TokenCodec,
        elections: ElectionDirectory,
        ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.codec = codec
        self.elections = elections
        self.ttl = ttl
        self.clock = clock

    def _default_expiry(self, election, now: datetime) -> datetime:
        if election is not None and election.ends_at:
            return election.ends_at
        return now + self.ttl

    def issue_link(
        self,
        member_id,
        election_id,
        chapter: str | None,
        issuer_id,
        member_email: str | None = None,
        expires_at: datetime | None = None,
    ) -> IssuedLink:
        """
        Create the single open link for (member, election) and return its token.

        Any open link for the pair is revoked first. Raises ElectionNotFound /
        ElectionNotOpen when the election is not accepting votes.
        """
        now = self.clock()
        election = self.elections.ensure_open(election_id, now)
        member_id = str(member_id)
        election_id = str(election.id)
        chapter = chapter or election.chapter
        expires_at = to_naive_utc(expires_at) if expires_at else self._default_expiry(election, now)

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            superseded = self.store.revoke_open_for_member(member_id, election_id)
            if superseded:
                current_app.logger.info(
                    "Superseded %s open voting link(s) member=%s election=%s",
                    superseded, member_id, election_id,
                )

            token, token_hash = self.codec.issue()
            link = VotingLink(
                member_id=member_id,
                member_email=member_email,
                election_id=election_id,
                chapter=chapter,
                token_hash=token_hash,
                status=VotingLink.STATUS_PENDING,
                expires_at=expires_at,
                generated_by=str(issuer_id),
                generated_at=now,
            )
            try:
                self.store.create(link)
            except DuplicateVerifier:
                if attempt == self.MAX_ATTEMPTS:
                    current_app.logger.critical(
                        "Repeated token verifier collision; check the randomness source"
                    )
                    raise
                current_app.logger.warning("Token verifier collision, retrying with a fresh token")
                continue
            except OpenLinkConflict:
                # A concurrent issuance for the same pair won; supersede it and retry
                if attempt == self.MAX_ATTEMPTS:
                    raise
                current_app.logger.warning(
                    "Concurrent voting link issuance member=%s election=%s, retrying",
                    member_id, election_id,
                )
                continue

            current_app.logger.info(
                "Issued voting link id=%s member=%s election=%s hash=%s..",
                link.id, member_id, election_id, token_hash[:8],
            )
            return IssuedLink(token=token, link=link)

    def issue_links(self, election_id, members: Iterable[dict], issuer_id, skip_existing: bool = True) -> BulkIssue:
        """
        Issue one link per member dict ({"member_id", "member_email"}).

        With skip_existing, a member who still holds a usable open link keeps it
        and is reported in `existing`. Each member is committed on its own, so a
        failure is recorded in `failed` and the remaining members are still issued.
        """
        now = self.clock()
        election = self.elections.ensure_open(election_id, now)
        result = BulkIssue()

        for m in members:
            member_id = str(m["member_id"])
            try:
                if skip_existing:
                    current = [
                        link for link in self.store.find_open_for_member(member_id, election.id)
                        if link.is_valid(now)
                    ]
                    if current:
                        result.existing.append(current[0])
                        continue

                result.issued.append(
                    self.issue_link(
                        member_id=member_id,
                        election_id=election.id,
                        chapter=election.chapter,
                        issuer_id=issuer_id,
                        member_email=m.get("member_email"),
                    )
                )
            except VotingLinkError as e:
                current_app.logger.warning(
                    "Voting link issuance failed member=%s election=%s code=%s",
                    member_id, election.id, e.code,
                )
                result.failed.append((member_id, e))

        return result

    def revoke(self, token_hash: str) -> bool:
        revoked = self.store.revoke(token_hash)
        if revoked:
            current_app.logger.info("Revoked voting link hash=%s..", token_hash[:8])
        return revoked

    def mark_sent(self, token_hash: str) -> bool:
        return self.store.mark_sent(token_hash, self.clock())
