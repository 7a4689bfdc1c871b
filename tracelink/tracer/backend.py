"""Capability interface that tracing backends must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional


class Transaction(ABC):
    """
    Handle for one backend transaction.

    Owned by the backend; a ``TraceContext`` only holds a reference to it
    for the duration of ``wrap_handler``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The transaction name."""

    @property
    @abstractmethod
    def is_ended(self) -> bool:
        """True once the backend has closed the transaction."""

    @abstractmethod
    def accept_inbound_linkage(self, category: str, headers: Mapping[str, str]) -> None:
        """Link this transaction to the upstream trace described by ``headers``."""

    @abstractmethod
    def extract_outbound_linkage(self) -> Dict[str, str]:
        """Return the headers a downstream consumer needs to link to this trace."""

    @abstractmethod
    def end(self) -> None:
        """Close the transaction. Calling it again is a no-op."""


class TracingBackend(ABC):
    """
    Interface consumed by ``TraceProvider``.

    Backends track the active transaction as ambient state; that state never
    leaks past this interface.
    """

    @abstractmethod
    async def start_background_transaction(
        self, name: str, work: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Run ``work`` inside a new transaction named ``name``.

        The transaction is active when ``work`` starts and is closed exactly
        once after ``work`` settles, whether it returns, raises or is
        cancelled. Errors from ``work`` propagate.
        """

    @abstractmethod
    def get_active_transaction(self) -> Optional[Transaction]:
        """Return the transaction active in the current execution context."""

    @abstractmethod
    async def start_segment(
        self, name: str, track_async: bool, work: Callable[[], Any]
    ) -> Any:
        """
        Run ``work`` attributed to a segment named ``name``.

        With ``track_async`` the segment stays open until an awaitable
        returned by ``work`` settles; otherwise it closes as soon as
        ``work`` returns.
        """

    @abstractmethod
    def report_error(self, error: BaseException) -> None:
        """Attach ``error`` to the active transaction. Must not raise."""

    def shutdown(self) -> None:
        """Flush and release backend resources."""
        pass
