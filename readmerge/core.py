#!/usr/bin/env python3

import argparse
import logging
import os
import sys

try:
    from readmerge import __version__
except ImportError:
    # Fallback for when running as a script directly (e.g., in tests)
    __version__ = "dev"

from readmerge.config import MergeConfig
from readmerge.io import read_aligned_reads, write_clusters
from readmerge.merge import merge_clusters
from readmerge.types import ClusterMergeError


def main():
    parser = argparse.ArgumentParser(
        description="Merge overlapping reference-aligned reads into consensus clusters"
    )
    parser.add_argument("input_file", help="Input FASTA of reads aligned to the reference (A2M convention)")
    parser.add_argument("-o", "--output", default=None,
                        help="Output FASTA of consensus clusters (default: <input>-clusters.fasta)")
    parser.add_argument("--min-overlap", type=int, default=1,
                        help="Minimum number of compatible shared positions to merge two clusters (default: 1)")
    parser.add_argument("--min-reads", type=int, default=1,
                        help="Minimum number of reads for a cluster to be reported (default: 1)")
    parser.add_argument("--tolerate-gaps", action="store_true",
                        help="Allow positions present in only one cluster inside the overlap")
    parser.add_argument("--tolerate-ambiguous", action="store_true",
                        help="Treat IUPAC codes sharing at least one base as matching")
    parser.add_argument("--no-progress", action="store_true",
                        help="Disable the merge progress bar")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--version", action="version",
                        version=f"Readmerge {__version__}",
                        help="Show program's version number and exit")

    args = parser.parse_args()

    # Setup standard logging
    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=log_format
    )

    try:
        config = MergeConfig.from_args(args)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        sys.exit(1)

    sample = os.path.splitext(os.path.basename(args.input_file))[0]
    output_file = args.output or f"{sample}-clusters.fasta"

    logging.info(f"Reading aligned reads from {args.input_file}")
    clusters = read_aligned_reads(args.input_file)
    logging.info(f"Loaded {len(clusters)} aligned reads")

    if not clusters:
        logging.warning("No sequences found in input file. Nothing to merge.")
        sys.exit(0)

    logging.info(f"Merging with min_overlap={config.min_overlap}, min_reads={config.min_reads}, "
                 f"tolerate_gaps={config.tolerate_gaps}, tolerate_ambiguous={config.tolerate_ambiguous}")

    try:
        nclusters = merge_clusters(clusters, config, progress=not args.no_progress)
    except ClusterMergeError as e:
        logging.error(f"Cluster merging failed: {e}")
        sys.exit(1)

    written = write_clusters(clusters, output_file, sample_name=sample, min_reads=config.min_reads)
    if written != nclusters:
        logging.warning(f"Expected {nclusters} clusters but wrote {written}")


if __name__ == "__main__":
    main()
