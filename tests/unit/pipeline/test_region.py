import os

import pytest

from varbin.pipeline import region
from varbin.pipeline.config_utils import ConfigurationError


@pytest.mark.parametrize(('chrom_size', 'bin_size', 'expected'), [
    (1, 1000, 1),
    (999, 1000, 1),
    (1000, 1000, 1),
    (1001, 1000, 2),
    (2500000, 1000000, 3),
    (3000000, 1000000, 3),
])
def test_bin_count_covers_chromosome(chrom_size, bin_size, expected):
    assert region.get_bin_count(chrom_size, bin_size) == expected


@pytest.mark.parametrize(('chrom_size', 'bin_size'), [(0, 10), (10, 0), (-5, 10)])
def test_bin_count_rejects_non_positive_sizes(chrom_size, bin_size):
    with pytest.raises(ValueError):
        region.get_bin_count(chrom_size, bin_size)


def test_bin_ids_are_zero_padded():
    assert region.get_bin_list(2500000, 1000000) == ["0000", "0001", "0002"]
    assert region.format_bin_id(12345) == "12345"


@pytest.mark.parametrize(('chrom_size', 'bin_size'), [
    (1, 1), (7, 3), (1000, 1000), (1001, 1000), (2500000, 1000000), (123457, 1000)])
def test_bins_tile_chromosome_without_overlap(chrom_size, bin_size):
    covered = 0
    last_end = 0
    for bin_id in region.get_bin_list(chrom_size, bin_size):
        begin, end = region.get_bin_range(bin_id, bin_size)
        assert begin == last_end + 1
        covered += min(end, chrom_size) - begin + 1
        last_end = end
    assert covered == chrom_size


def test_final_bin_end_is_not_clipped():
    bins = region.get_bin_list(2500000, 1000000)
    assert region.get_bin_range(bins[-1], 1000000) == (2000001, 3000000)


def test_bin_tasks_in_chromosome_then_bin_order(workflow_config):
    tasks = list(region.bin_tasks(workflow_config))
    assert [(t.chrom, t.bin_id) for t in tasks] == [("chr1", "0000"), ("chr1", "0001"),
                                                    ("chr1", "0002"), ("chr2", "0000")]
    out_dir = workflow_config.derived.outDir
    first = tasks[0]
    assert first.bin_dir == os.path.join(out_dir, "chromosomes", "chr1", "bins", "0000")
    assert first.marker == os.path.join(first.bin_dir, "task.complete")
    assert first.vcf_file == os.path.join(first.bin_dir, "NA12878.genome.vcf.gz")
    assert first.realigned_bam == os.path.join(first.bin_dir, "NA12878.realigned.bam")
    assert first.log_file == os.path.join(first.bin_dir, "ivc.stderr")
    assert (tasks[-1].begin, tasks[-1].end) == (1, 1000000)


def test_get_bin_task_checks_plan(workflow_config):
    task = region.get_bin_task(workflow_config, "chr1", "0002")
    assert (task.begin, task.end) == (2000001, 3000000)
    with pytest.raises(ConfigurationError):
        region.get_bin_task(workflow_config, "chr2", "0001")
    with pytest.raises(ConfigurationError):
        region.get_bin_task(workflow_config, "chrM", "0000")
