"""Operation Context Management.

Task-local logging context using contextvars for binding the client
operation, symbol and account to every log entry emitted inside a call.
Each asyncio task runs in a copy of its parent's context, so bindings
made inside one fan-out task never leak into its siblings.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


_operation_var: ContextVar[str] = ContextVar("operation", default="")
_symbol_var: ContextVar[str] = ContextVar("symbol", default="")
_account_id_var: ContextVar[str] = ContextVar("account_id", default="")
_call_id_var: ContextVar[str] = ContextVar("call_id", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def generate_call_id() -> str:
    """Generate a short unique identifier for one client call."""
    return uuid.uuid4().hex[:12]


def get_operation() -> str:
    return _operation_var.get()


def get_symbol() -> str:
    return _symbol_var.get()


def get_context_dict() -> dict[str, Any]:
    """Get all context variables as a dictionary for log binding."""
    ctx = {}
    call_id = _call_id_var.get()
    if call_id:
        ctx["call_id"] = call_id
    operation = _operation_var.get()
    if operation:
        ctx["operation"] = operation
    symbol = _symbol_var.get()
    if symbol:
        ctx["symbol"] = symbol
    account_id = _account_id_var.get()
    if account_id:
        ctx["account_id"] = account_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class OperationContext:
    """Context manager for operation-scoped logging context.

    Values left empty inherit from the enclosing context, so a per-symbol
    context nested in a batch operation keeps the batch's call id.

    Example:
        with OperationContext(operation="get_bars", symbol="MSFT"):
            logger.info("fetching")  # includes operation, symbol
    """

    operation: str = ""
    symbol: str = ""
    account_id: str = ""
    call_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    _tokens: list = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.call_id:
            self.call_id = _call_id_var.get() or generate_call_id()

    def __enter__(self) -> "OperationContext":
        self._tokens = [(_call_id_var, _call_id_var.set(self.call_id))]
        for var, value in (
            (_operation_var, self.operation),
            (_symbol_var, self.symbol),
            (_account_id_var, self.account_id),
        ):
            if value:
                self._tokens.append((var, var.set(value)))
        merged = {**_extra_context_var.get(), **self.extra}
        self._tokens.append((_extra_context_var, _extra_context_var.set(merged)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since context was created."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Add extra key-value pairs to the context."""
        current = _extra_context_var.get()
        _extra_context_var.set({**current, **kwargs})
        self.extra.update(kwargs)
