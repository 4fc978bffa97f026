"""
Pairwise overlap merging of clusters and the greedy loop that drives it to a fixed point.

merge_two() walks two position lists in lockstep (a merge-join keyed on
compare_positions) and decides whether the clusters describe the same segment.
merge_clusters() applies it across a whole collection, largest clusters first,
until a full pass produces no merge.
"""

import logging
from typing import List

from tqdm import tqdm

from .config import MergeConfig
from .nucleotide import bits_to_nuc, codes_compatible
from .ordering import Ordering, compare_positions
from .types import (
    Cluster,
    ClusterMergeError,
    MergeResult,
    MergeStatus,
    NoMatchReason,
    PositionRecord,
)


def _format_position(pos: PositionRecord) -> str:
    return f"{pos.column} {pos.insertion} {bits_to_nuc(pos.nucleotide)}"


def _no_match(reason: NoMatchReason, detail: str = "", overlap: int = 0) -> MergeResult:
    if detail:
        logging.debug(f"No merge: {reason.value} ({detail})")
    else:
        logging.debug(f"No merge: {reason.value}")
    return MergeResult(MergeStatus.NO_MATCH, reason=reason, detail=detail, overlap=overlap)


def _gap(lagging: str, pos: PositionRecord) -> MergeResult:
    # The lagging side holds a position the other side lacks
    other = "ys" if lagging == "xs" else "xs"
    return _no_match(NoMatchReason.GAP_DISALLOWED,
                     f"no gaps in {other}, {lagging} has {_format_position(pos)}")


def _build_merged(xs: Cluster, ys: Cluster, merged_len: int) -> Cluster:
    """Re-walk both clusters and emit the union of their positions."""
    xpos, ypos = xs.positions, ys.positions
    xlen, ylen = len(xpos), len(ypos)
    positions: List[PositionRecord] = []
    xidx = yidx = 0

    while xidx < xlen and yidx < ylen:
        x, y = xpos[xidx], ypos[yidx]
        cmp = compare_positions(x, y)
        if cmp is Ordering.LESS:
            positions.append(x)
            xidx += 1
        elif cmp is Ordering.GREATER:
            positions.append(y)
            yidx += 1
        else:
            # Numeric minimum of the masks, not their intersection
            positions.append(PositionRecord(
                column=x.column,
                insertion=x.insertion,
                nucleotide=min(x.nucleotide, y.nucleotide),
                coverage=x.coverage + y.coverage,
            ))
            xidx += 1
            yidx += 1

    positions.extend(xpos[xidx:])
    positions.extend(ypos[yidx:])

    if len(positions) < merged_len:
        logging.warning(f"Failed to fill merged cluster: {len(positions)} of {merged_len} positions")
    elif len(positions) > merged_len:
        logging.warning(f"Overfilled merged cluster: {len(positions)} of {merged_len} positions")

    return Cluster(
        positions=positions,
        left=min(xs.left, ys.left),
        right=max(xs.right, ys.right),
        contribution_count=xs.contribution_count + ys.contribution_count,
        read_ids=xs.read_ids + ys.read_ids,
    )


def merge_two(xs: Cluster, ys: Cluster, config: MergeConfig) -> MergeResult:
    """
    Try to merge two clusters into one consensus cluster.

    The overhang of whichever cluster starts first is skipped, then both position
    lists are walked together. Positions present on only one side are gaps and are
    accepted only with config.tolerate_gaps. Positions present on both sides must
    carry compatible nucleotide codes; the first incompatible pair ends the attempt.
    The walk never backtracks.

    Args:
        xs: First cluster (not modified)
        ys: Second cluster (not modified)
        config: Overlap threshold and tolerances

    Returns:
        MergeResult with status SUCCESS and the new cluster, NO_MATCH with the
        reason the pair does not combine, or ERROR if the merged cluster could
        not be built.
    """
    xpos, ypos = xs.positions, ys.positions
    xlen, ylen = len(xpos), len(ypos)

    if not xlen or not ylen:
        return _no_match(NoMatchReason.INSUFFICIENT_LENGTH)

    # Even the best alignment of the two spans cannot reach min_overlap
    if (xs.right < ys.left + config.min_overlap and
            ys.right < xs.left + config.min_overlap):
        return _no_match(NoMatchReason.NO_OPPORTUNITY,
                         f"xs [{xs.left}, {xs.right}], ys [{ys.left}, {ys.right}]")

    overlap = 0
    merged_len = 0
    xidx = yidx = 0

    # Disregard overhangs; skipped records go straight into the merged length
    cmp = compare_positions(xpos[0], ypos[0])
    if cmp is Ordering.LESS:
        while cmp is Ordering.LESS and xidx + 1 < xlen:
            xidx += 1
            cmp = compare_positions(xpos[xidx], ypos[yidx])
        merged_len += xidx
    elif cmp is Ordering.GREATER:
        while cmp is Ordering.GREATER and yidx + 1 < ylen:
            yidx += 1
            cmp = compare_positions(xpos[xidx], ypos[yidx])
        merged_len += yidx

    if cmp is not Ordering.EQUAL and not config.tolerate_gaps:
        if cmp is Ordering.LESS:
            return _gap("xs", xpos[xidx])
        return _gap("ys", ypos[yidx])

    # Walk the overlap
    while xidx < xlen and yidx < ylen:
        x, y = xpos[xidx], ypos[yidx]
        cmp = compare_positions(x, y)
        if cmp is Ordering.LESS:
            if not config.tolerate_gaps:
                return _gap("xs", x)
            xidx += 1
        elif cmp is Ordering.GREATER:
            if not config.tolerate_gaps:
                return _gap("ys", y)
            yidx += 1
        elif codes_compatible(x.nucleotide, y.nucleotide, config.tolerate_ambiguous):
            overlap += 1
            xidx += 1
            yidx += 1
        else:
            return _no_match(NoMatchReason.MISMATCH,
                             f"{_format_position(x)}, {_format_position(y)}", overlap)
        merged_len += 1

    if overlap < config.min_overlap:
        return _no_match(NoMatchReason.INSUFFICIENT_OVERLAP,
                         f"{overlap} < {config.min_overlap}", overlap)

    # Whatever remains of either side is appended as is
    merged_len += (xlen - xidx) + (ylen - yidx)

    try:
        merged = _build_merged(xs, ys, merged_len)
    except MemoryError:
        logging.error(f"Memory allocation error building a merged cluster of {merged_len} positions")
        return MergeResult(MergeStatus.ERROR, reason=NoMatchReason.ALLOCATION,
                           detail=f"{merged_len} positions", overlap=overlap)

    return MergeResult(MergeStatus.SUCCESS, cluster=merged, overlap=overlap)


def merge_clusters(clusters: List[Cluster], config: MergeConfig, progress: bool = True) -> int:
    """
    Merge clusters in place until no pair in the collection combines.

    Clusters are visited largest first (by contribution count). Each cluster
    absorbs the first later cluster it merges with, then rescans from just after
    itself with the grown consensus until nothing else merges into it. Any merge
    during a pass triggers a fresh sort and a full new pass.

    Args:
        clusters: Working collection; merged inputs are released and removed,
            merged results take the absorbing cluster's slot
        config: Overlap threshold, tolerances and min_reads
        progress: Show a progress bar of merges performed

    Returns:
        Number of surviving clusters with contribution_count >= config.min_reads

    Raises:
        ClusterMergeError: A merge attempt failed fatally
    """
    initial_count = len(clusters)
    merges = 0
    passes = 0

    with tqdm(total=max(initial_count - 1, 0), desc="Merging clusters", unit="merge",
              disable=not progress) as pbar:
        while True:
            passes += 1
            merged_this_pass = False
            nclusters = 0

            # Stable sort keeps ties in their current order
            clusters.sort(key=lambda c: c.contribution_count, reverse=True)

            i = 0
            while i < len(clusters):
                absorbed = True
                while absorbed:
                    absorbed = False
                    for j in range(i + 1, len(clusters)):
                        result = merge_two(clusters[i], clusters[j], config)
                        if result.status is MergeStatus.SUCCESS:
                            clusters[i].release()
                            clusters[j].release()
                            clusters[i] = result.cluster
                            del clusters[j]
                            merges += 1
                            merged_this_pass = absorbed = True
                            pbar.update(1)
                            pbar.set_postfix(clusters=len(clusters))
                            break
                        if result.status is MergeStatus.ERROR:
                            raise ClusterMergeError(result.reason, result.detail)

                if clusters[i].contribution_count >= config.min_reads:
                    nclusters += 1
                i += 1

            if not merged_this_pass:
                break
            logging.debug(f"Pass {passes}: {len(clusters)} clusters remain, rescanning")

    logging.info(f"Merged {initial_count} clusters into {len(clusters)} "
                 f"({merges} merges over {passes} passes); "
                 f"{nclusters} clusters with at least {config.min_reads} reads")
    return nclusters
