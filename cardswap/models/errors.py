"""
Known failures of the matching engine.

Every error carries a kind, a user-appropriate message and the HTTP status
the API reports it with. Fetch and persist errors are normally caught inside
the engine and degrade to "no new information"; authorization and lookup
errors always reach the caller.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of matching failures."""

    HOLDINGS_FETCH = "holdings_fetch"
    MATCH_FETCH = "match_fetch"
    MATCH_PERSIST = "match_persist"
    UNAUTHORIZED_MUTATION = "unauthorized_mutation"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class CardSwapError(Exception):
    """Base class for known, explainable failures."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_response(self) -> dict[str, str | None]:
        """JSON body reported to API callers."""
        return {"kind": self.kind.value, "message": self.message, "detail": self.detail}


class HoldingsFetchError(CardSwapError):
    """Holdings could not be loaded or were malformed."""

    kind = ErrorKind.HOLDINGS_FETCH
    status_code = 503


class MatchFetchError(CardSwapError):
    """Stored match records could not be read."""

    kind = ErrorKind.MATCH_FETCH
    status_code = 503


class MatchPersistError(CardSwapError):
    """A match insert, update or delete failed."""

    kind = ErrorKind.MATCH_PERSIST
    status_code = 503


class UnauthorizedMutationError(CardSwapError):
    """A caller tried to change a match record it does not own."""

    kind = ErrorKind.UNAUTHORIZED_MUTATION
    status_code = 403

    def __init__(self, match_id: int, owner_id: str):
        self.match_id = match_id
        self.owner_id = owner_id
        super().__init__(
            f"Match {match_id} does not belong to profile {owner_id}",
        )


class MatchNotFoundError(CardSwapError):
    """No match record with the given id."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, match_id: int):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class ProfileNotFoundError(CardSwapError):
    """No profile with the given id."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile {profile_id} not found")
