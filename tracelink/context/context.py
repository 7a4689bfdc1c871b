"""The mutable carrier passed through one unit of traced work."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, TYPE_CHECKING

from tracelink.errors import TransactionStateError

if TYPE_CHECKING:
    from tracelink.tracer.backend import Transaction


@dataclass(repr=False)
class TraceContext:
    """
    Carrier for one transaction's name, backend handle and inbound linkage.

    A context is created per unit of work, either empty or seeded with the
    linkage decoded from an upstream token, and is mutated in place by
    ``TraceProvider.wrap_handler``. Use the accessor methods rather than
    assigning the private fields: they enforce that the transaction handle
    is bound once and that inbound linkage is consumed once.
    """

    _name: Optional[str] = None
    _transaction: Optional["Transaction"] = None
    _inbound_linkage: Optional[Dict[str, str]] = None
    _finished: bool = False

    @classmethod
    def from_inbound_linkage(cls, headers: Mapping[str, str]) -> "TraceContext":
        """Create a context carrying linkage received from an upstream caller."""
        return cls(_inbound_linkage=dict(headers))

    @property
    def name(self) -> Optional[str]:
        return self._name

    def assign_name(self, name: str) -> None:
        """
        Set the transaction name.

        Raises:
            TransactionStateError: if a different name was already assigned
        """
        if self._name is not None and self._name != name:
            raise TransactionStateError(
                "Transaction name is already set on this context",
                {"current": self._name, "requested": name},
            )
        self._name = name

    @property
    def transaction(self) -> Optional["Transaction"]:
        """The backend handle, or None before the transaction starts."""
        return self._transaction

    @property
    def has_transaction(self) -> bool:
        """True once a handle was bound, even if it has since been finished."""
        return self._transaction is not None

    @property
    def is_active(self) -> bool:
        """True while the bound transaction is open."""
        return self._transaction is not None and not self._finished

    def bind_transaction(self, transaction: "Transaction") -> None:
        """
        Attach the backend handle for this context's transaction.

        Raises:
            TransactionStateError: if a handle was already bound
        """
        if self._transaction is not None:
            raise TransactionStateError(
                "A transaction was already started for this context",
                {"name": self._name},
            )
        self._transaction = transaction

    def finish(self) -> None:
        """Mark the bound transaction stale once the backend has closed it."""
        if self._transaction is None:
            return
        self._finished = True

    @property
    def inbound_linkage(self) -> Optional[Dict[str, str]]:
        """Pending upstream linkage, or None if absent or already accepted."""
        if self._inbound_linkage is None:
            return None
        return dict(self._inbound_linkage)

    @property
    def has_inbound_linkage(self) -> bool:
        return self._inbound_linkage is not None

    def take_inbound_linkage(self) -> Optional[Dict[str, str]]:
        """Return the pending linkage and remove it from the context."""
        linkage, self._inbound_linkage = self._inbound_linkage, None
        return linkage

    def __repr__(self) -> str:
        state = "active" if self.is_active else ("finished" if self._finished else "idle")
        return (
            f"TraceContext(name={self._name!r}, state={state}, "
            f"inbound_linkage={self.has_inbound_linkage})"
        )
