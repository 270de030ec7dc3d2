"""Per-task correlation context for organization isolation and logging."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

organization_id_var: ContextVar[Optional[int]] = ContextVar("organization_id", default=None)
conversation_id_var: ContextVar[Optional[int]] = ContextVar("conversation_id", default=None)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_organization_context(organization_id: int | None) -> None:
    """Set the current organization context.

    Args:
        organization_id: Organization ID to set in context
    """
    organization_id_var.set(organization_id)


def get_organization_context() -> int | None:
    """Get the current organization context."""
    return organization_id_var.get()


def set_conversation_context(conversation_id: int | None) -> None:
    """Set the conversation being processed by the current task."""
    conversation_id_var.set(conversation_id)


def get_conversation_context() -> int | None:
    """Get the conversation being processed by the current task."""
    return conversation_id_var.get()


def get_request_id() -> str | None:
    """Get the request id assigned by the request middleware."""
    return request_id_var.get()


@contextmanager
def bind_log_context(
    organization_id: int | None = None,
    conversation_id: int | None = None,
) -> Iterator[None]:
    """Bind correlation ids for the duration of a block.

    Values are restored on exit so nested or sequential units of work
    (one reconciliation group after another, one webhook after another on
    the same task) never inherit each other's ids.
    """
    org_token = organization_id_var.set(organization_id)
    conv_token = conversation_id_var.set(conversation_id)
    try:
        yield
    finally:
        conversation_id_var.reset(conv_token)
        organization_id_var.reset(org_token)
