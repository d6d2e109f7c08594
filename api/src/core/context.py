"""Log context carried through a request or a webhook delivery.

Fields bound here are merged into every log line by the structlog
processor in ``src.core.logging``:

- ``request_id``: per HTTP request (``X-Request-ID`` or generated)
- ``user_id`` / ``company_id``: the authenticated caller
- ``stripe_event_id``: the Stripe event being processed
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
company_id_var: ContextVar[str | None] = ContextVar("company_id", default=None)
stripe_event_id_var: ContextVar[str | None] = ContextVar("stripe_event_id", default=None)

_OPTIONAL_VARS: dict[str, ContextVar[str | None]] = {
    "user_id": user_id_var,
    "company_id": company_id_var,
    "stripe_event_id": stripe_event_id_var,
}


def _as_str(value: str | UUID | None) -> str | None:
    return str(value) if value is not None else None


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind the request ID, generating one when the caller sent none."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def set_identity(user_id: str | UUID | None, company_id: str | UUID | None = None) -> None:
    """Bind the authenticated user (and their company, if any)."""
    user_id_var.set(_as_str(user_id))
    company_id_var.set(_as_str(company_id))


def get_context() -> dict[str, Any]:
    """Bound, non-empty context fields."""
    context: dict[str, Any] = {}
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    for key, var in _OPTIONAL_VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def clear_context() -> None:
    request_id_var.set("")
    for var in _OPTIONAL_VARS.values():
        var.set(None)


@contextmanager
def stripe_event_context(event_id: str) -> Iterator[None]:
    """Tag logs emitted while a webhook event is handled with its event ID."""
    token = stripe_event_id_var.set(event_id)
    try:
        yield
    finally:
        stripe_event_id_var.reset(token)
