"""Backend used when tracing is disabled."""

from __future__ import annotations

import inspect
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from tracelink.tracer.backend import TracingBackend, Transaction

_active: ContextVar[Optional["NoopTransaction"]] = ContextVar(
    "tracelink_noop_transaction", default=None
)


class NoopTransaction(Transaction):
    """Transaction handle that records nothing and links nothing."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._ended = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_ended(self) -> bool:
        return self._ended

    def accept_inbound_linkage(self, category: str, headers: Mapping[str, str]) -> None:
        return None

    def extract_outbound_linkage(self) -> Dict[str, str]:
        return {}

    def end(self) -> None:
        self._ended = True


class NoopBackend(TracingBackend):
    """Runs work unchanged while still honoring the transaction contract."""

    async def start_background_transaction(
        self, name: str, work: Callable[[], Awaitable[Any]]
    ) -> Any:
        transaction = NoopTransaction(name)
        token = _active.set(transaction)
        try:
            return await work()
        finally:
            transaction.end()
            _active.reset(token)

    def get_active_transaction(self) -> Optional[Transaction]:
        return _active.get()

    async def start_segment(self, name: str, track_async: bool, work: Callable[[], Any]) -> Any:
        result = work()
        if inspect.isawaitable(result):
            result = await result
        return result

    def report_error(self, error: BaseException) -> None:
        return None
