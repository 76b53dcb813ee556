import hashlib
import hmac
import re
import secrets

from ..exceptions import ConfigurationError, InvalidToken

TOKEN_BYTES = 32
# token_urlsafe(32) -> 43 url-safe base64 characters, no padding
TOKEN_LENGTH = 43
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{%d}$" % TOKEN_LENGTH)


class TokenCodec:
    """
    Issues opaque voting-link tokens and their verifiers.

    The verifier is HMAC-SHA256(secret, token) in hex. It is deterministic, so
    redemption recomputes it and looks the link up by it; without the secret
    the stored verifiers say nothing about the tokens.
    """

    def __init__(self, secret: str | bytes | None, min_length: int = 32):
        if not secret:
            raise ConfigurationError("VOTE_LINK_SECRET is not configured")
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if len(secret) < min_length:
            raise ConfigurationError(
                f"VOTE_LINK_SECRET must be at least {min_length} characters"
            )
        self._secret = secret

    def _digest(self, token: str) -> str:
        return hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self) -> tuple[str, str]:
        token = secrets.token_urlsafe(TOKEN_BYTES)
        return token, self._digest(token)

    def verify(self, candidate) -> str:
        """Recompute the verifier for a presented token."""
        if not isinstance(candidate, str) or not _TOKEN_RE.match(candidate):
            raise InvalidToken()
        return self._digest(candidate)

    def matches(self, candidate, token_hash: str) -> bool:
        try:
            expected = self.verify(candidate)
        except InvalidToken:
            return False
        return hmac.compare_digest(expected, token_hash or "")
