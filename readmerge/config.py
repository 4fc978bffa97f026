"""Configuration for cluster merging."""

from dataclasses import dataclass


@dataclass
class MergeConfig:
    """Thresholds and tolerances applied to every merge attempt.

    Attributes:
        min_overlap: Minimum number of compatible shared positions (default: 1)
        min_reads: Minimum contribution count for a cluster to be reported (default: 1)
        tolerate_gaps: Allow one side to hold positions the other lacks inside the overlap
        tolerate_ambiguous: Accept equal positions whose IUPAC codes share at least one base
    """
    min_overlap: int = 1
    min_reads: int = 1
    tolerate_gaps: bool = False
    tolerate_ambiguous: bool = False

    def __post_init__(self):
        if self.min_overlap < 0:
            raise ValueError(f"min_overlap must be >= 0, got {self.min_overlap}")
        if self.min_reads < 1:
            raise ValueError(f"min_reads must be >= 1, got {self.min_reads}")

    @classmethod
    def from_args(cls, args) -> 'MergeConfig':
        """Create config from command-line arguments."""
        return cls(
            min_overlap=getattr(args, 'min_overlap', 1),
            min_reads=getattr(args, 'min_reads', 1),
            tolerate_gaps=getattr(args, 'tolerate_gaps', False),
            tolerate_ambiguous=getattr(args, 'tolerate_ambiguous', False),
        )
