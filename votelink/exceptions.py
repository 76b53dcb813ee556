class VotingLinkError(Exception):
    """Base class for every error raised by the voting-link core."""

    code = "VOTING_LINK_ERROR"
    status = 400
    message = "Voting link error"

    def __init__(self, message: str | None = None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details


class ConfigurationError(VotingLinkError):
    code = "CONFIGURATION_ERROR"
    status = 500
    message = "Voting links are misconfigured"


# Redemption failures. TokenExpired and TokenAlreadyUsed are InvalidToken
# subclasses so callers that only catch InvalidToken see a single case.
class InvalidToken(VotingLinkError):
    code = "INVALID_TOKEN"
    status = 401
    message = "Invalid voting link"


class TokenExpired(InvalidToken):
    code = "TOKEN_EXPIRED"
    message = "Voting link has expired"


class TokenAlreadyUsed(InvalidToken):
    code = "TOKEN_ALREADY_USED"
    message = "Voting link has already been used"


class ElectionNotFound(VotingLinkError):
    code = "ELECTION_NOT_FOUND"
    status = 404
    message = "Election not found"


class ElectionNotOpen(VotingLinkError):
    code = "ELECTION_NOT_OPEN"
    status = 409
    message = "Election is not accepting votes"


class LinkNotFound(VotingLinkError):
    code = "LINK_NOT_FOUND"
    status = 404
    message = "Voting link not found"


class DuplicateVerifier(VotingLinkError):
    code = "DUPLICATE_VERIFIER"
    status = 500
    message = "Generated token collided with an existing link"


class OpenLinkConflict(VotingLinkError):
    code = "OPEN_LINK_CONFLICT"
    status = 409
    message = "Another open link exists for this member and election"


class StorageUnavailable(VotingLinkError):
    code = "STORAGE_UNAVAILABLE"
    status = 503
    message = "Voting link storage is unavailable, please retry"
