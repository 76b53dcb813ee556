from datetime import timedelta

from flask import current_app
from ..extensions import db

from .delivery import LinkDelivery
from .elections import ElectionDirectory
from .issuance import BulkIssue, IssuanceService, IssuedLink
from .link_store import LinkStore, TransitionResult
from .redemption import Redemption, RedemptionService
from .token_codec import TokenCodec


class VotingLinks:
    """
    Flask extension wiring the voting-link core for an app.

    The codec is built in init_app so a missing or short VOTE_LINK_SECRET
    stops create_app() instead of failing on the first request.
    """

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        codec = TokenCodec(
            app.config.get("VOTE_LINK_SECRET"),
            min_length=int(app.config.get("VOTE_LINK_MIN_SECRET_LENGTH", 32)),
        )
        app.extensions["voting_links"] = {
            "codec": codec,
            "ttl": timedelta(hours=int(app.config.get("VOTE_LINK_TTL_HOURS", 720))),
        }

    @property
    def _state(self) -> dict:
        return current_app.extensions["voting_links"]

    @property
    def codec(self) -> TokenCodec:
        return self._state["codec"]

    # Services are cheap and bound to the request-scoped db.session

    @property
    def store(self) -> LinkStore:
        return LinkStore(db.session)

    @property
    def elections(self) -> ElectionDirectory:
        return ElectionDirectory(db.session)

    @property
    def issuance(self) -> IssuanceService:
        return IssuanceService(self.store, self.codec, self.elections, ttl=self._state["ttl"])

    @property
    def redemption(self) -> RedemptionService:
        return RedemptionService(self.store, self.codec)

    @property
    def delivery(self) -> LinkDelivery:
        return LinkDelivery(self.issuance)


voting_links = VotingLinks()


__all__ = [
    "BulkIssue",
    "ElectionDirectory",
    "IssuanceService",
    "IssuedLink",
    "LinkDelivery",
    "LinkStore",
    "Redemption",
    "RedemptionService",
    "TokenCodec",
    "TransitionResult",
    "VotingLinks",
    "voting_links",
]
