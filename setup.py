#!/usr/bin/env python

"""Setup file and install script for the binned variant calling workflow"""

import os
import subprocess

import setuptools

VERSION = '0.3.0'

# add varbin version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (subprocess.SubprocessError, OSError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'varbin', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# samtools style operations go through pysam; the variant caller and bgzip
# executables are found on the PATH or configured under `resources`
setuptools.setup(name='varbin',
                 version=VERSION,
                 description='Parallel binned small variant and gVCF calling for whole genome BAM files',
                 python_requires='>=3.6',
                 packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
                 scripts=['scripts/varbin_workflow.py'],
                 install_requires=['logbook',
                                   'toolz',
                                   'PyYAML',
                                   'pysam',
                                   'biopython'],
                 extras_require={'test': ['pytest', 'mock', 'pytest-mock']})
