#!/usr/bin/env python3
"""
Tests for merge_clusters, the greedy loop that merges a collection to a fixed point.
"""

import itertools

import pytest

import readmerge.merge
from readmerge.config import MergeConfig
from readmerge.merge import merge_clusters, merge_two
from readmerge.types import ClusterMergeError, MergeStatus

from helpers import generate_dna_sequence, make_cluster


REFERENCE = generate_dna_sequence("aggregate_reference", 120)
COMPLEMENT = REFERENCE.translate(str.maketrans("ACGT", "TGCA"))


@pytest.fixture
def merge_counter(monkeypatch):
    """Record every successful merge_two call made by merge_clusters."""
    merged = []
    original = readmerge.merge.merge_two

    def counting_merge_two(xs, ys, config):
        result = original(xs, ys, config)
        if result.merged:
            merged.append((list(xs.read_ids), list(ys.read_ids)))
        return result

    monkeypatch.setattr(readmerge.merge, "merge_two", counting_merge_two)
    return merged


def reads(name, sequence, starts, length):
    return [make_cluster(sequence[s:s + length], start=s, read_id=f"{name}{s}") for s in starts]


class TestMergeClusters:

    def test_chain_of_merges_into_first_cluster(self, merge_counter):
        """Scenario E: 1 absorbs 2, the result absorbs 3, 4 stays apart."""
        clusters = [
            make_cluster(REFERENCE[0:10], start=0, read_id="r1"),
            make_cluster(REFERENCE[5:15], start=5, read_id="r2"),
            make_cluster(REFERENCE[12:21], start=12, read_id="r3"),
            make_cluster(REFERENCE[100:111], start=100, read_id="r4"),
        ]
        config = MergeConfig(min_overlap=3, min_reads=2)

        count = merge_clusters(clusters, config, progress=False)

        assert count == 1
        assert len(merge_counter) == 2
        assert len(clusters) == 2
        assert clusters[0].read_ids == ["r1", "r2", "r3"]
        assert clusters[0].contribution_count == 3
        assert (clusters[0].left, clusters[0].right) == (0, 20)
        assert clusters[1].read_ids == ["r4"]

    def test_absorbing_cluster_rescans_after_growing(self):
        """a cannot reach c until it has absorbed b, all within one scan of a."""
        a = make_cluster(REFERENCE[0:10], start=0, read_id="a")
        c = make_cluster(REFERENCE[12:21], start=12, read_id="c")
        b = make_cluster(REFERENCE[5:15], start=5, read_id="b")
        clusters = [a, c, b]

        count = merge_clusters(clusters, MergeConfig(min_overlap=3), progress=False)

        assert count == 1
        assert clusters[0].read_ids == ["a", "b", "c"]

    def test_largest_cluster_absorbs(self):
        low = make_cluster(REFERENCE[0:10], start=0, read_id="low")
        high = make_cluster(REFERENCE[5:15], start=5, contribution_count=4, read_id="high")
        clusters = [low, high]

        merge_clusters(clusters, MergeConfig(min_overlap=3), progress=False)

        assert len(clusters) == 1
        assert clusters[0].read_ids == ["high", "low"]
        assert clusters[0].contribution_count == 5

    def test_merged_inputs_released(self):
        x = make_cluster(REFERENCE[0:10], start=0)
        y = make_cluster(REFERENCE[5:15], start=5)
        clusters = [x, y]

        merge_clusters(clusters, MergeConfig(min_overlap=3), progress=False)

        assert clusters[0] is not x and clusters[0] is not y
        for released in (x, y):
            assert released.positions == []
            assert released.contribution_count == 0

    def test_conflicting_reads_stay_separate(self, merge_counter):
        """Reads from two haplotypes that differ at every column form two clusters."""
        starts = range(0, 71, 7)
        clusters = [c for pair in zip(reads("a", REFERENCE, starts, 20),
                                      reads("b", COMPLEMENT, starts, 20))
                    for c in pair]
        initial = len(clusters)

        count = merge_clusters(clusters, MergeConfig(min_overlap=5), progress=False)

        assert count == 2
        assert len(clusters) == 2
        assert initial - len(clusters) == len(merge_counter)
        assert sorted(c.contribution_count for c in clusters) == [11, 11]
        for cluster in clusters:
            assert len({read_id[0] for read_id in cluster.read_ids}) == 1

    def test_result_is_fixed_point(self):
        starts = [0, 3, 11, 19, 40, 44, 52, 90, 95]
        clusters = reads("r", REFERENCE, starts, 15) + reads("s", COMPLEMENT, [20, 60], 15)
        config = MergeConfig(min_overlap=4, tolerate_gaps=True)
        initial = len(clusters)

        merge_clusters(clusters, config, progress=False)

        assert len(clusters) <= initial
        assert sum(c.contribution_count for c in clusters) == initial
        for xs, ys in itertools.combinations(clusters, 2):
            assert merge_two(xs, ys, config).status is MergeStatus.NO_MATCH

    def test_min_reads_threshold(self):
        clusters = [
            make_cluster(REFERENCE[0:10], start=0, contribution_count=3),
            make_cluster(REFERENCE[50:60], start=50),
        ]

        count = merge_clusters(clusters, MergeConfig(min_overlap=3, min_reads=2), progress=False)

        assert count == 1
        assert len(clusters) == 2

    def test_empty_collection(self):
        clusters = []
        assert merge_clusters(clusters, MergeConfig(), progress=False) == 0
        assert clusters == []

    def test_fatal_error_aborts(self, monkeypatch):
        def fail(*args, **kwargs):
            raise MemoryError()

        monkeypatch.setattr(readmerge.merge, "_build_merged", fail)
        clusters = [
            make_cluster(REFERENCE[0:10], start=0),
            make_cluster(REFERENCE[5:15], start=5),
        ]

        with pytest.raises(ClusterMergeError, match="memory allocation error"):
            merge_clusters(clusters, MergeConfig(min_overlap=3), progress=False)

        # Nothing was released or removed
        assert len(clusters) == 2
        assert all(len(c) == 10 for c in clusters)
