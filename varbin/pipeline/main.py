"""Command line entry points for each step of a binned variant calling run.

configure plans a run and writes its Makefile; the Makefile calls back into
callbin for every bin and consolidate once all bins finished.
"""
import argparse
import os
import subprocess
import sys

import pysam

from varbin import log, utils
from varbin.bam import depth, fasta
from varbin.log import logger
from varbin.pipeline import config_utils, configure, consolidate, version
from varbin.variation import callbin

def _out_dir_from_run_config(config_file):
    """Analysis directory of a persisted run configuration in <outDir>/config.
    """
    return os.path.dirname(os.path.dirname(os.path.abspath(config_file)))

def run_configure(args):
    configure.configure_workflow(args.bam, args.ref, args.config, args.out_dir,
                                 cmdline=" ".join(sys.argv))

def run_callbin(args):
    config = config_utils.load_workflow_config(args.config)
    callbin.run_bin(config, args.chrom, args.bin, skip_header=args.skip_header)

def run_consolidate(args):
    consolidate.run(args.config)

def run_depth(args):
    depth.run(args.bam, args.out_file)

def run_countfasta(args):
    for fasta_file in args.fasta:
        utils.check_file(fasta_file, "fasta")
    fasta.write_base_counts(args.fasta, sys.stdout)

def add_subparsers(parser):
    subparsers = parser.add_subparsers(title="commands", dest="command")
    subparsers.required = True

    sp = subparsers.add_parser("configure", help="Plan a new analysis and write its Makefile")
    sp.add_argument("--bam", required=True, help="Sorted and indexed BAM file to call variants on")
    sp.add_argument("--ref", required=True, help="Indexed reference fasta file")
    sp.add_argument("--config", required=True,
                    help="YAML configuration with user options (see config/varbin_workflow.yaml)")
    sp.add_argument("--output-dir", dest="out_dir", default=None,
                    help="Analysis directory to create (default: ./%s)" % configure.DEFAULT_OUT_DIR)
    sp.set_defaults(func=run_configure, log_config=None)

    sp = subparsers.add_parser("callbin", help="Call variants in a single chromosome bin")
    sp.add_argument("--config", required=True, help="Run configuration written by configure")
    sp.add_argument("--chrom", required=True, help="Chromosome name")
    sp.add_argument("--bin", required=True, help="Zero padded bin id")
    sp.add_argument("--skip-header", action="store_true", default=False,
                    help="Do not write the gVCF header for this bin")
    sp.set_defaults(func=run_callbin, log_config=True)

    sp = subparsers.add_parser("consolidate", help="Merge bin results into final outputs")
    sp.add_argument("--config", required=True, help="Run configuration written by configure")
    sp.set_defaults(func=run_consolidate, log_config=True)

    sp = subparsers.add_parser("depth", help="Estimate average depth per chromosome of a BAM file")
    sp.add_argument("--bam", required=True, help="Indexed BAM file")
    sp.add_argument("-o", "--out-file", dest="out_file", required=True, help="Depth output file")
    sp.set_defaults(func=run_depth, log_config=None)

    sp = subparsers.add_parser("countfasta", help="Count known and total bases per fasta contig")
    sp.add_argument("fasta", nargs="+", help="Fasta files to scan")
    sp.set_defaults(func=run_countfasta, log_config=None)
    return parser

def parse_cl_args(in_args):
    description = "Parallel binned small variant and gVCF calling on whole genome BAM files."
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Log debugging output to the terminal")
    parser.add_argument("--version", action="version", version="%(prog)s " + version.__version__)
    add_subparsers(parser)
    return parser.parse_args(in_args)

def main(in_args=None):
    args = parse_cl_args(sys.argv[1:] if in_args is None else in_args)
    out_dir = _out_dir_from_run_config(args.config) if args.log_config else None
    if out_dir and not os.path.isdir(out_dir):
        out_dir = None
    handler = log.setup_local_logging(out_dir, verbose=args.verbose)
    try:
        args.func(args)
    except config_utils.ConfigurationError as e:
        logger.error("Configuration error: %s" % e)
        return 1
    except utils.ResourceError as e:
        logger.error("Missing resource: %s" % e)
        return 1
    except consolidate.ConsistencyError as e:
        logger.error("Workflow consistency error: %s" % e)
        return 1
    except subprocess.CalledProcessError as e:
        logger.error("External command failed with exit status %s: %s" % (e.returncode, e.cmd))
        return 1
    except pysam.utils.SamtoolsError as e:
        logger.error("samtools failed: %s" % e)
        return 1
    except IOError as e:
        logger.error("File error: %s" % e)
        return 1
    except ValueError as e:
        logger.error("Invalid input: %s" % e)
        return 1
    finally:
        handler.pop_application()
        handler.close()
    return 0

if __name__ == "__main__":
    sys.exit(main())
