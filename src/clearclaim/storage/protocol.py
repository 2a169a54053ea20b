"""Storage protocols for claim records and the processing work queue.

The lifecycle controller depends only on these interfaces. The in-memory
implementations in ``clearclaim.storage.memory`` back tests and single
process deployments; durable implementations can be swapped in without
changing consuming code.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..core.models import Claim, ClaimPage, utc_now


class WorkStage(str, Enum):
    """Processing stage of a claim's work item."""

    DIGITIZE = "digitize"
    MATCH = "match"
    ADJUDICATE = "adjudicate"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class WorkItem:
    """Durable record of where a claim's background processing stands."""

    claim_id: str
    stage: WorkStage = WorkStage.DIGITIZE
    attempts: int = 0
    last_error: str | None = None
    failed_stage: WorkStage | None = None
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_finished(self) -> bool:
        return self.stage == WorkStage.COMPLETED


@runtime_checkable
class ClaimStore(Protocol):
    """Key-value store for claim records."""

    async def create(self, claim: Claim) -> Claim:
        """Persist a new claim.

        Returns:
            The stored claim.
        """
        ...

    async def get(self, claim_id: str) -> Claim | None:
        """Get a claim by id, or None when unknown."""
        ...

    async def list(self, page: int = 1, limit: int = 10) -> ClaimPage:
        """List claims, most recently created first.

        Args:
            page: 1-based page number.
            limit: Page size.
        """
        ...

    async def update(self, claim_id: str, **fields: Any) -> Claim:
        """Apply a partial update and return the updated claim.

        Raises:
            ClaimNotFoundError: If the claim does not exist.
        """
        ...


@runtime_checkable
class WorkQueue(Protocol):
    """Per-claim work items for background processing."""

    async def put(self, claim_id: str) -> WorkItem:
        """Enqueue (or re-enqueue) a claim at the first stage."""
        ...

    async def advance(self, claim_id: str, stage: WorkStage) -> WorkItem:
        """Record that processing reached a stage."""
        ...

    async def fail(self, claim_id: str, error: str) -> WorkItem:
        """Mark a claim's processing as failed."""
        ...

    async def complete(self, claim_id: str) -> WorkItem:
        """Mark a claim's processing as finished."""
        ...

    async def get(self, claim_id: str) -> WorkItem | None:
        ...

    async def pending(self) -> list[WorkItem]:
        """Work items that have not completed, including failed ones."""
        ...
