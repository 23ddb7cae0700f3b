"""Exceptions raised by the token services."""


class AuthError(Exception):
    """Base authentication error."""

    pass


class TokenError(AuthError):
    """JWT token error."""

    pass


class InvalidTokenError(TokenError):
    """Token failed signature, issuer, audience, subject or expiry checks.

    The message is always the same generic text; the specific cause is only
    logged.
    """

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class MalformedTokenError(TokenError):
    """Token could not be parsed into a claim set."""

    pass


class IssuanceError(AuthError):
    """A signed token could not be recorded in the ledger and was discarded."""

    pass


class LedgerUnavailableError(AuthError):
    """The token ledger timed out or failed.

    Distinct from token errors so callers can retry instead of rejecting a
    legitimate user.
    """

    pass
