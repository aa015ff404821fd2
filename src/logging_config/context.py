"""Request Context.

Binds the identity of the AI request being screened or routed to every
log line emitted while it is processed. Backed by contextvars, so worker
threads and tasks each see their own request.
"""

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
_user_id_var: ContextVar[str] = ContextVar("user_id", default="")
_extra_context_var: ContextVar[Dict[str, Any]] = ContextVar("extra_context", default={})


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id_var.get()


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_user_id() -> str:
    return _user_id_var.get()


def get_context_dict() -> Dict[str, Any]:
    """Collect the non-empty context values for log binding."""
    ctx: Dict[str, Any] = {}
    for key, var in (
        ("request_id", _request_id_var),
        ("correlation_id", _correlation_id_var),
        ("user_id", _user_id_var),
    ):
        value = var.get()
        if value:
            ctx[key] = value
    ctx.update(_extra_context_var.get())
    return ctx


@dataclass
class RequestContext:
    """Context manager scoping log context to one AI request.

    Example:
        with RequestContext(request_id=request.request_id, user_id=request.user_id):
            gateway.assess_request_security(request)

    Nested contexts restore the outer values on exit.
    """

    request_id: str = ""
    correlation_id: str = ""
    user_id: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    _tokens: List[Token] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.request_id:
            self.request_id = generate_request_id()
        if not self.correlation_id:
            self.correlation_id = self.request_id

    def __enter__(self) -> "RequestContext":
        self._tokens = [
            _request_id_var.set(self.request_id),
            _correlation_id_var.set(self.correlation_id),
            _user_id_var.set(self.user_id),
            _extra_context_var.set(dict(self.extra)),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        request_tok, correlation_tok, user_tok, extra_tok = self._tokens
        _extra_context_var.reset(extra_tok)
        _user_id_var.reset(user_tok)
        _correlation_id_var.reset(correlation_tok)
        _request_id_var.reset(request_tok)
        self._tokens = []

    @property
    def elapsed_ms(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Attach extra keys (e.g. provider_id) for the rest of the context."""
        _extra_context_var.set({**_extra_context_var.get(), **kwargs})
        self.extra.update(kwargs)
