"""Load, validate and persist workflow configuration.

A run configuration has two namespaces: `user` tunables read from the input
YAML file and `derived` values computed while planning the run. Both are
frozen into a WorkflowConfig once planning finishes, written to
`config/run.config.yaml` in the analysis directory and re-read unchanged by
every later workflow step.
"""
import collections
import os
import shutil

import yaml

from varbin import utils
from varbin.distributed.transaction import file_transaction


class ConfigurationError(ValueError):
    pass


class CmdNotFound(utils.ResourceError):
    pass

# ## Configuration structure

USER_REQUIRED = ["binSize", "depthFilterMultiple", "minGQX", "indelMaxRefRepeat", "minMapq",
                 "maxInputDepth", "isSkipDepthFilters", "isWriteRealignedBam"]
USER_OPTIONAL = collections.OrderedDict([("extraIvcArguments", ""), ("tmpDir", None)])
DERIVED_REQUIRED = ["configurationCmdline", "inputBam", "refFile", "outDir", "knownGenomeSize",
                    "chromOrder", "chromSizes", "chromKnownSizes", "callerBin", "bgzipBin",
                    "workflowCmd"]
DERIVED_OPTIONAL = collections.OrderedDict([("depthFile", None)])

_INTS = set(["binSize", "minGQX", "indelMaxRefRepeat", "minMapq", "maxInputDepth", "knownGenomeSize"])
_FLOATS = set(["depthFilterMultiple"])
_BOOLS = set(["isSkipDepthFilters", "isWriteRealignedBam"])

UserConfig = collections.namedtuple("UserConfig", USER_REQUIRED + list(USER_OPTIONAL.keys()))
DerivedConfig = collections.namedtuple("DerivedConfig", DERIVED_REQUIRED + list(DERIVED_OPTIONAL.keys()))


class WorkflowConfig(collections.namedtuple("WorkflowConfig", ["user", "derived", "resources"])):
    """Immutable, validated configuration shared by every workflow step.
    """
    __slots__ = ()

    @classmethod
    def from_dict(cls, config, source=None):
        """Build a configuration from `user`/`derived` dictionaries, validating all keys.
        """
        problems = []
        user = _build_section(UserConfig, "user", config.get("user") or {},
                              USER_REQUIRED, USER_OPTIONAL, problems)
        derived = _build_section(DerivedConfig, "derived", config.get("derived") or {},
                                 DERIVED_REQUIRED, DERIVED_OPTIONAL, problems)
        if user and derived and not problems:
            problems.extend(_check_consistency(user, derived))
        if problems:
            raise ConfigurationError("Invalid workflow configuration%s:\n  %s" %
                                     (" in '%s'" % source if source else "", "\n  ".join(problems)))
        resources = dict(config.get("resources") or {})
        return cls(user, derived, resources)

    def to_dict(self):
        out = {"user": dict(self.user._asdict()),
               "derived": dict(self.derived._asdict())}
        out["derived"]["chromOrder"] = list(self.derived.chromOrder)
        out["derived"]["chromSizes"] = dict(self.derived.chromSizes)
        out["derived"]["chromKnownSizes"] = dict(self.derived.chromKnownSizes)
        if self.resources:
            out["resources"] = dict(self.resources)
        return out

    def chrom_size(self, chrom):
        try:
            return self.derived.chromSizes[chrom]
        except KeyError:
            raise ConfigurationError("Undefined chromosome size in configuration: '%s'" % chrom)

    @property
    def file_prefix(self):
        """Output file prefix, the input BAM name without directory and extension.
        """
        return utils.file_basename(self.derived.inputBam)

def _build_section(section_cls, name, values, required, optional, problems):
    missing = [k for k in required if values.get(k) is None]
    problems.extend("Undefined configuration option: '%s:%s'" % (name, k) for k in missing)
    out = {}
    for key in required + list(optional.keys()):
        val = values.get(key, optional.get(key))
        if val is not None:
            try:
                val = _coerce(key, val)
            except (TypeError, ValueError):
                problems.append("Unexpected value for '%s:%s': %r" % (name, key, val))
        out[key] = val
    if missing:
        return None
    return section_cls(**out)

def _coerce(key, val):
    if key in _INTS:
        if isinstance(val, bool):
            raise ValueError(val)
        return int(val)
    elif key in _FLOATS:
        return float(val)
    elif key in _BOOLS:
        if isinstance(val, str):
            if val.strip().lower() in ["1", "true", "yes"]:
                return True
            elif val.strip().lower() in ["0", "false", "no"]:
                return False
            raise ValueError(val)
        return bool(val)
    elif key == "chromOrder":
        if isinstance(val, str):
            val = val.split("\t")
        return tuple(str(x) for x in val)
    elif key in ["chromSizes", "chromKnownSizes"]:
        return dict((str(k), int(v)) for k, v in val.items())
    elif key == "extraIvcArguments":
        return str(val)
    return val

def _check_consistency(user, derived):
    problems = []
    if user.binSize <= 0:
        problems.append("Bin size must be a positive integer: '%s'" % user.binSize)
    for chrom in derived.chromOrder:
        if chrom not in derived.chromSizes:
            problems.append("Undefined configuration option: 'derived:chromSizes:%s'" % chrom)
        elif derived.chromSizes[chrom] <= 0:
            problems.append("Unexpected chromosome size for '%s': %s" % (chrom, derived.chromSizes[chrom]))
    if not user.isSkipDepthFilters and not derived.depthFile:
        problems.append("Undefined configuration option: 'derived:depthFile' "
                        "(required unless isSkipDepthFilters is set)")
    return problems

# ## Reading and writing

def load_config(config_file, expand=True):
    """Load YAML config file, replacing environmental variables.

    Persisted run configurations are read with expand=False so values come
    back exactly as written.
    """
    utils.check_file(config_file, "configuration")
    with open(config_file) as in_handle:
        try:
            config = yaml.safe_load(in_handle)
        except yaml.YAMLError as msg:
            raise ConfigurationError("Could not parse configuration file '%s': %s" % (config_file, msg))
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration file '%s' does not contain a mapping" % config_file)
    return _expand_paths(config) if expand else config

def load_workflow_config(config_file):
    """Read a persisted run configuration back into a validated WorkflowConfig.
    """
    return WorkflowConfig.from_dict(load_config(config_file, expand=False), source=config_file)

def check_user_config(config, config_file=None):
    """Validate the `user` namespace of an input configuration before planning starts.

    Returns the typed UserConfig.
    """
    problems = []
    user = _build_section(UserConfig, "user", config.get("user") or {}, USER_REQUIRED, USER_OPTIONAL,
                          problems)
    if not problems and user.binSize <= 0:
        problems.append("Bin size must be a positive integer: '%s'" % user.binSize)
    if problems:
        raise ConfigurationError("Invalid workflow configuration%s:\n  %s" %
                                 (" in '%s'" % config_file if config_file else "", "\n  ".join(problems)))
    return user

RUN_CONFIG_HEADER = """\
#
# varbin workflow run configuration
#
# This is an automatically generated file, you probably don't want to edit it. If starting a new run,
# an input configuration template can be found in the config/ directory of the distribution.
#
"""

def write_workflow_config(config, out_file):
    """Persist a WorkflowConfig as YAML; load_workflow_config reads back identical values.
    """
    with file_transaction(config, out_file) as tx_out_file:
        with open(tx_out_file, "w") as out_handle:
            out_handle.write(RUN_CONFIG_HEADER)
            yaml.safe_dump(config.to_dict(), out_handle, default_flow_style=False, allow_unicode=False)
    return out_file

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

# ## Programs

def get_program(name, config, default=None):
    """Retrieve the command for a program, checking it is executable.

    Looks in the `resources` section of the configuration first, where a
    program can be given as a plain path or a dictionary with a `cmd` key,
    then searches the PATH.
    """
    if hasattr(config, "resources"):
        resources = config.resources
    else:
        resources = (config or {}).get("resources") or {}
    pconfig = resources.get(name)
    if isinstance(pconfig, str):
        program = pconfig
    elif isinstance(pconfig, dict) and "cmd" in pconfig:
        program = pconfig["cmd"]
    else:
        program = default or name
    program = expand_path(program)
    is_ok = lambda f: os.path.isfile(f) and os.access(f, os.X_OK)
    if is_ok(program):
        return os.path.abspath(program)
    found = shutil.which(program)
    if found:
        return found
    raise CmdNotFound("Can't find required program '%s' (looked for '%s' in resources and PATH)"
                      % (name, program))

