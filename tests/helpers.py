"""Shared builders for readmerge tests."""

import random
from typing import Optional

from readmerge.nucleotide import nuc_to_bits
from readmerge.types import Cluster, PositionRecord


def generate_dna_sequence(seed_str: str, length: int) -> str:
    """Generate a deterministic DNA sequence from a seed string."""
    rng = random.Random(seed_str)
    return ''.join(rng.choice('ACGT') for _ in range(length))


def make_cluster(bases: str, start: int = 0, contribution_count: int = 1,
                 read_id: Optional[str] = None) -> Cluster:
    """Cluster with one reference-column record per base, starting at column start."""
    positions = [PositionRecord(start + i, 0, nuc_to_bits(b)) for i, b in enumerate(bases)]
    return Cluster(
        positions=positions,
        left=start,
        right=start + len(bases) - 1,
        contribution_count=contribution_count,
        read_ids=[read_id] if read_id else [],
    )
