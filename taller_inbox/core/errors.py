"""Error taxonomy for the messaging ingestion core.

Repositories raise, services translate, and only the HTTP layer turns an
``InboxError`` into a response (see ``taller_inbox.main``).
"""

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"


class InboxError(Exception):
    """Base class for errors surfaced by the ingestion core."""

    status_code = 500

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}


class NotFoundError(InboxError):
    """A scoped lookup found nothing."""

    status_code = 404


class TenantResolutionError(NotFoundError):
    """No organization owns the provider session."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__("Unknown messaging session", session_id=session_id)
        self.session_id = session_id


class ConversationNotFoundError(NotFoundError):
    """Conversation does not exist in the caller's organization."""

    def __init__(self, organization_id: int, conversation_id: int) -> None:
        super().__init__(
            "Conversation not found",
            organization_id=organization_id,
            conversation_id=conversation_id,
        )


class LeadNotFoundError(NotFoundError):
    """Lead does not exist in the caller's organization."""

    def __init__(self, organization_id: int, lead_id: int) -> None:
        super().__init__("Lead not found", organization_id=organization_id, lead_id=lead_id)


class ValidationError(InboxError):
    """Malformed inbound event or request."""

    status_code = 400


class UniquenessRaceError(InboxError):
    """A concurrent writer already created the row we tried to create.

    Never surfaced to callers: the conversation store re-reads the winner,
    the lead converter falls back to a fuzzy lookup, and the reconciliation
    job leaves the row for its next run.
    """

    status_code = 409


class StoreError(InboxError):
    """Any other persistence failure."""

    status_code = 500


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check whether an IntegrityError is a unique-constraint violation.

    Works for asyncpg (SQLSTATE 23505) and SQLite ("UNIQUE constraint failed").
    """
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == UNIQUE_VIOLATION_SQLSTATE:
            return True
    return "UNIQUE constraint failed" in str(orig) or "duplicate key value" in str(orig)
