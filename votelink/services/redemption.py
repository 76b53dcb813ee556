from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from flask import current_app

from ..exceptions import InvalidToken, TokenAlreadyUsed, TokenExpired
from ..models.voting_link import VotingLink
from ..utils.clock import utcnow
from .link_store import LinkStore, TransitionResult
from .token_codec import TokenCodec


@dataclass(frozen=True)
class Redemption:
    member_id: str
    election_id: str
    chapter: str


class RedemptionService:
    """
    Validates and consumes presented tokens.

    Only the conditional update in LinkStore.transition_to_used decides
    success, so any number of concurrent redeem() calls for one token yield
    exactly one Redemption.
    """

    def __init__(self, store: LinkStore, codec: TokenCodec, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.codec = codec
        self.clock = clock

    def _terminal_error(self, token_hash: str, now: datetime) -> InvalidToken:
        link = self.store.find_by_hash(token_hash)
        if link is None or link.status == VotingLink.STATUS_REVOKED:
            return InvalidToken()
        if link.status == VotingLink.STATUS_USED:
            return TokenAlreadyUsed()
        if link.status == VotingLink.STATUS_EXPIRED or now >= link.expires_at:
            return TokenExpired()
        return InvalidToken()

    def redeem(self, token: str, positions: Iterable | None = None, ip: str | None = None) -> Redemption:
        now = self.clock()
        token_hash = self.codec.verify(token)
        self.store.record_access(token_hash, ip, now)

        link = self.store.find_active_by_hash(token_hash)
        if link is None or not self.codec.matches(token, link.token_hash):
            raise self._terminal_error(token_hash, now)

        # Copy before the transition commits and expires the instance
        redemption = Redemption(
            member_id=link.member_id,
            election_id=link.election_id,
            chapter=link.chapter,
        )

        if now >= link.expires_at:
            self.store.expire(token_hash, now)
            raise TokenExpired()

        result = self.store.transition_to_used(token_hash, positions, now)
        if result is TransitionResult.SUCCESS:
            current_app.logger.info(
                "Voting link redeemed member=%s election=%s", redemption.member_id, redemption.election_id
            )
            return redemption
        if result is TransitionResult.ALREADY_USED:
            current_app.logger.info("Voting link redemption lost race hash=%s..", token_hash[:8])
            raise TokenAlreadyUsed()
        if result is TransitionResult.EXPIRED:
            self.store.expire(token_hash, now)
            raise TokenExpired()
        raise InvalidToken()

    def is_valid(self, token_hash: str, ip: str | None = None) -> bool:
        """Read-only check; only the access telemetry changes."""
        now = self.clock()
        self.store.record_access(token_hash, ip, now)
        link = self.store.find_active_by_hash(token_hash)
        return link is not None and link.is_valid(now)

    def check_token(self, token: str, ip: str | None = None) -> bool:
        try:
            token_hash = self.codec.verify(token)
        except InvalidToken:
            return False
        return self.is_valid(token_hash, ip)
