"""
Claim storage and work queue.
"""

from .memory import InMemoryClaimStore, InMemoryWorkQueue
from .protocol import ClaimStore, WorkItem, WorkQueue, WorkStage

__all__ = [
    "ClaimStore",
    "InMemoryClaimStore",
    "InMemoryWorkQueue",
    "WorkItem",
    "WorkQueue",
    "WorkStage",
]
