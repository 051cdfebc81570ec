"""Domain port for batch and recovery dispatch."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID


class IBatchOrchestrator(Protocol):
    """Defines how prediction batches are handed to background workers."""

    async def dispatch_batch(self, session_id: UUID) -> str:
        """Queue a prediction batch for asynchronous execution.

        Returns:
            Identifier of the dispatched task.
        """
        ...

    async def dispatch_recovery(self) -> str:
        """Queue a recovery sweep followed by cleanup of old sessions."""
        ...
