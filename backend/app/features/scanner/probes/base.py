# backend/app/features/scanner/probes/base.py
"""Base class for probes."""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

ItemT = TypeVar("ItemT")
OutcomeT = TypeVar("OutcomeT")


class Probe(ABC, Generic[ItemT, OutcomeT]):
    """One asynchronous unit of work per scan item.

    A probe is opened once per run (``async with probe:``) so it can hold a
    connection pool, then called once per work item. ``probe`` must report
    transport failures inside its outcome instead of raising.
    """

    name: str

    async def open(self) -> None:
        """Acquire per-run resources."""

    async def close(self) -> None:
        """Release per-run resources."""

    async def __aenter__(self) -> "Probe[ItemT, OutcomeT]":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abstractmethod
    async def probe(self, item: ItemT, context: Any) -> OutcomeT:
        """
        Probe a single work item.

        Args:
            item: The work item (an endpoint or a port number)
            context: Scan-wide configuration for the current run

        Returns:
            The raw outcome to hand to the classifier
        """
        pass
