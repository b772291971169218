#!/usr/bin/env python -Es
"""Parallel binned small variant and gVCF calling on whole genome BAM files.

Configure a new analysis, then run the generated Makefile:

  varbin_workflow.py configure --bam sample.bam --ref genome.fa \
      --config config/varbin_workflow.yaml --output-dir analysis
  make -C analysis -j 8

The Makefile calls back into this script with the `callbin` and
`consolidate` commands. `depth` and `countfasta` run the depth estimation
and reference scan steps on their own.
"""
import sys

from varbin.pipeline.main import main

if __name__ == "__main__":
    sys.exit(main())
