"""Data structures shared by the merger, the aggregator and the file readers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional


class PositionRecord(NamedTuple):
    """One observed column of a cluster."""
    column: int  # Reference coordinate
    insertion: int  # 0 for the reference column, k for the k-th base inserted after it
    nucleotide: int  # 4-bit IUPAC mask, see readmerge.nucleotide
    coverage: int = 1  # Number of reads contributing this call


@dataclass
class Cluster:
    """A consensus-in-progress built from one or more merged reads.

    Attributes:
        positions: Records sorted strictly ascending by (column, insertion)
        left: Leftmost reference column spanned
        right: Rightmost reference column spanned
        contribution_count: Number of original reads subsumed
        read_ids: Names of the subsumed reads, in merge order
    """
    positions: List[PositionRecord]
    left: int
    right: int
    contribution_count: int = 1
    read_ids: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.positions)

    def release(self) -> None:
        """Drop the owned positions once this cluster has been merged into another."""
        self.positions = []
        self.left = 0
        self.right = 0
        self.contribution_count = 0
        self.read_ids = []


class MergeStatus(Enum):
    SUCCESS = "success"
    NO_MATCH = "no match"
    ERROR = "error"


class NoMatchReason(Enum):
    INSUFFICIENT_LENGTH = "insufficient length"
    NO_OPPORTUNITY = "no opportunity for sufficient overlap"
    GAP_DISALLOWED = "gap disallowed"
    MISMATCH = "mismatch"
    INSUFFICIENT_OVERLAP = "insufficient overlap"
    ALLOCATION = "memory allocation error"


class MergeResult(NamedTuple):
    """Outcome of one pairwise merge attempt."""
    status: MergeStatus
    cluster: Optional[Cluster] = None  # Set only on SUCCESS
    reason: Optional[NoMatchReason] = None
    detail: str = ""  # e.g. which side held the gap
    overlap: int = 0

    @property
    def merged(self) -> bool:
        return self.status is MergeStatus.SUCCESS


class ClusterMergeError(RuntimeError):
    """Fatal failure while merging; aborts the whole aggregation."""

    def __init__(self, reason: NoMatchReason, detail: str = ""):
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.detail = detail
