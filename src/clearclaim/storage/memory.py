"""In-memory claim store and work queue."""

import asyncio
import logging
import math
from dataclasses import replace
from typing import Any

from ..core.models import Claim, ClaimPage, utc_now
from ..exceptions import ClaimNotFoundError
from .protocol import WorkItem, WorkStage

logger = logging.getLogger(__name__)


class InMemoryClaimStore:
    """Claim store keeping records in a dict.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._claims: dict[str, Claim] = {}
        self._lock = asyncio.Lock()

    async def create(self, claim: Claim) -> Claim:
        async with self._lock:
            self._claims[claim.claim_id] = claim.model_copy(deep=True)
        logger.debug("Stored claim %s", claim.claim_id)
        return claim.model_copy(deep=True)

    async def get(self, claim_id: str) -> Claim | None:
        async with self._lock:
            claim = self._claims.get(claim_id)
            return claim.model_copy(deep=True) if claim else None

    async def update(self, claim_id: str, **fields: Any) -> Claim:
        async with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                raise ClaimNotFoundError(f"Claim not found: {claim_id}", claim_id=claim_id)
            unknown = set(fields) - set(Claim.model_fields)
            if unknown:
                raise ValueError(f"Unknown claim fields: {', '.join(sorted(unknown))}")
            updated = claim.model_copy(update={**fields, "updated_at": utc_now()}, deep=True)
            self._claims[claim_id] = updated
            return updated.model_copy(deep=True)

    async def count(self) -> int:
        async with self._lock:
            return len(self._claims)

    async def list(self, page: int = 1, limit: int = 10) -> ClaimPage:
        page = max(page, 1)
        limit = max(limit, 1)
        async with self._lock:
            ordered = sorted(self._claims.values(), key=lambda c: c.created_at, reverse=True)
        start = (page - 1) * limit
        return ClaimPage(
            claims=[c.model_copy(deep=True) for c in ordered[start : start + limit]],
            total=len(ordered),
            page=page,
            total_pages=math.ceil(len(ordered) / limit),
        )


class InMemoryWorkQueue:
    """Work queue keeping one work item per claim."""

    def __init__(self) -> None:
        self._items: dict[str, WorkItem] = {}
        self._lock = asyncio.Lock()

    def _require(self, claim_id: str) -> WorkItem:
        item = self._items.get(claim_id)
        if item is None:
            raise ClaimNotFoundError(f"No work item for claim: {claim_id}", claim_id=claim_id)
        return item

    async def put(self, claim_id: str) -> WorkItem:
        async with self._lock:
            item = self._items.get(claim_id) or WorkItem(claim_id=claim_id)
            item.stage = WorkStage.DIGITIZE
            item.attempts += 1
            item.updated_at = utc_now()
            self._items[claim_id] = item
            return replace(item)

    async def advance(self, claim_id: str, stage: WorkStage) -> WorkItem:
        async with self._lock:
            item = self._require(claim_id)
            item.stage = stage
            item.updated_at = utc_now()
            return replace(item)

    async def fail(self, claim_id: str, error: str) -> WorkItem:
        async with self._lock:
            item = self._require(claim_id)
            item.failed_stage = item.stage
            item.stage = WorkStage.FAILED
            item.last_error = error
            item.updated_at = utc_now()
            return replace(item)

    async def complete(self, claim_id: str) -> WorkItem:
        async with self._lock:
            item = self._require(claim_id)
            item.stage = WorkStage.COMPLETED
            item.last_error = None
            item.failed_stage = None
            item.updated_at = utc_now()
            return replace(item)

    async def get(self, claim_id: str) -> WorkItem | None:
        async with self._lock:
            item = self._items.get(claim_id)
            return replace(item) if item else None

    async def pending(self) -> list[WorkItem]:
        async with self._lock:
            return [replace(i) for i in self._items.values() if not i.is_finished]
