"""
Reading aligned reads into clusters and writing consensus clusters back out.

Reads and consensus sequences use the A2M alignment convention against the
reference: uppercase letters occupy a reference column, '-' marks a reference
column with no base, lowercase letters are bases inserted after the preceding
column and '.' is insert padding.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .nucleotide import bits_to_nuc, nuc_to_bits
from .types import Cluster, PositionRecord


OFFSET_PATTERN = re.compile(r'\boffset=(-?\d+)\b')


def parse_offset(description: str) -> int:
    """Reference column of the first aligned character, from an 'offset=N' header field."""
    match = OFFSET_PATTERN.search(description)
    return int(match.group(1)) if match else 0


def aligned_to_positions(aligned: str, offset: int = 0) -> Tuple[List[PositionRecord], int]:
    """
    Convert an A2M aligned read into position records.

    Returns:
        Tuple of (positions, last reference column consumed)
    """
    positions = []
    column = offset - 1
    insertion = 0

    for char in aligned:
        if char == '.':
            continue
        if char == '-':
            column += 1
            insertion = 0
        elif char.islower():
            insertion += 1
            positions.append(PositionRecord(column, insertion, nuc_to_bits(char)))
        else:
            column += 1
            insertion = 0
            positions.append(PositionRecord(column, 0, nuc_to_bits(char)))

    return positions, column


def record_to_cluster(record: SeqRecord) -> Optional[Cluster]:
    """Build a single-read cluster, or None if the record holds no bases."""
    offset = parse_offset(record.description)
    positions, last_column = aligned_to_positions(str(record.seq), offset)
    if not positions:
        return None

    return Cluster(
        positions=positions,
        left=min(offset, positions[0].column),
        right=max(last_column, positions[-1].column),
        read_ids=[record.id],
    )


def read_aligned_reads(input_file: str, format: str = "fasta") -> List[Cluster]:
    """Load one cluster per aligned read in input_file."""
    clusters = []
    skipped = 0
    for record in SeqIO.parse(input_file, format):
        cluster = record_to_cluster(record)
        if cluster is None:
            skipped += 1
            continue
        clusters.append(cluster)

    if skipped:
        logging.warning(f"Skipped {skipped} reads with no aligned bases")
    logging.debug(f"Loaded {len(clusters)} aligned reads from {input_file}")
    return clusters


def render_a2m(cluster: Cluster) -> str:
    """Render a cluster's consensus over its full span as an A2M string."""
    chars = []
    column = cluster.left - 1

    for pos in cluster.positions:
        # Insertions follow their reference column, so that column is closed first
        target = pos.column if pos.insertion else pos.column - 1
        while column < target:
            column += 1
            chars.append('-')
        nuc = bits_to_nuc(pos.nucleotide)
        if pos.insertion:
            chars.append(nuc.lower())
        else:
            column = pos.column
            chars.append(nuc)

    chars.extend('-' * (cluster.right - column))
    return ''.join(chars)


def cluster_to_record(cluster: Cluster, name: str) -> SeqRecord:
    description = (f"size={cluster.contribution_count} "
                   f"offset={cluster.left} left={cluster.left} right={cluster.right}")
    return SeqRecord(Seq(render_a2m(cluster)), id=name, description=description)


def write_clusters(clusters: Iterable[Cluster], output_file: str,
                   sample_name: str = "sample", min_reads: int = 1) -> int:
    """
    Write clusters supported by at least min_reads reads as FASTA.

    Records are named '{sample_name}-c{n}' in the order given.

    Returns:
        Number of clusters written
    """
    records = []
    for cluster in clusters:
        if cluster.contribution_count < min_reads:
            continue
        records.append(cluster_to_record(cluster, f"{sample_name}-c{len(records) + 1}"))

    with open(output_file, 'w') as f:
        SeqIO.write(records, f, "fasta")

    logging.info(f"Wrote {len(records)} clusters to {output_file}")
    return len(records)
