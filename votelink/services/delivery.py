from flask import current_app

from .issuance import IssuanceService, IssuedLink
from ..utils.mailer import send_voting_link_email


class LinkDelivery:
    """Emails a freshly issued token and reports delivery back to the store."""

    def __init__(self, issuance: IssuanceService):
        self.issuance = issuance

    @staticmethod
    def vote_url(token: str) -> str:
        base = current_app.config.get("FRONTEND_URL", "").rstrip("/")
        return f"{base}/vote/{token}"

    def send(self, issued: IssuedLink, election_title: str, name: str | None = None) -> bool:
        """Returns True when the email went out. Failures leave the link open."""
        link = issued.link
        if not link.member_email:
            current_app.logger.info("No email address for voting link id=%s, not sending", link.id)
            return False

        try:
            send_voting_link_email(
                to_email=link.member_email,
                election_title=election_title,
                vote_url=self.vote_url(issued.token),
                expires_at=link.expires_at,
                name=name,
            )
        except Exception:
            current_app.logger.exception("Failed to send voting link email id=%s", link.id)
            return False

        self.issuance.mark_sent(link.token_hash)
        return True
