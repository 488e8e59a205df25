"""
config.py
----------
Merges configuration coming from defaults, a YAML file, environment
variables and explicit (command line) overrides.

Precedence, lowest to highest:
1. Built-in defaults
2. wphunter.config.yml (optional; a missing file is not an error)
3. WPHUNTER_* / WORKER_* environment variables
4. Explicit overrides

Each layer only replaces the fields it sets. Lists are replaced wholesale.
"""

import copy
import os

from wphunter.core.errors import ConfigError
from wphunter.core.targets import read_targets_file
from wphunter.core.utils import load_yaml, log


DEFAULT_CONFIG_PATH = "wphunter.config.yml"

MAX_THREADS = 64

SCAN_MODES = ("stealthy", "bruteforce", "hybrid")

# First non-empty alias wins; the legacy WORKER_ prefix is still honoured.
ENV_KEYS = {
    "targets": ("WPHUNTER_TARGETS", "WORKER_TARGETS"),
    "targets_file": ("WPHUNTER_TARGETS_FILE", "WORKER_TARGETS_FILE"),
    "mode": ("WPHUNTER_MODE", "WORKER_MODE"),
    "threads": ("WPHUNTER_THREADS", "WORKER_THREADS"),
    "output_dir": ("WPHUNTER_OUTPUT_DIR", "WORKER_OUTPUT_DIR"),
    "formats": ("WPHUNTER_FORMATS", "WORKER_FORMATS"),
    "detectors": ("WPHUNTER_DETECTORS", "WORKER_DETECTORS"),
    "dry_run": ("WPHUNTER_DRY_RUN", "WORKER_DRY_RUN"),
    "summary_file": ("WPHUNTER_SUMMARY_FILE", "WORKER_SUMMARY_FILE"),
}

TARGET_DELIMITERS = (",", "\n", "\r")
LIST_DELIMITERS = (",", "\n", "\r", " ")


# ------------------------------------------------
# LIST PARSING
# ------------------------------------------------
def _split_on_delimiters(value, delimiters):
    if not value or not value.strip():
        return []

    text = value.strip()
    for delim in delimiters[1:]:
        text = text.replace(delim, delimiters[0])
    return clean_list(text.split(delimiters[0]))


def clean_list(values):
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def parse_targets_list(value):
    """Split comma or newline separated targets."""
    return _split_on_delimiters(value, TARGET_DELIMITERS)


def parse_formats(value):
    return _split_on_delimiters(value, LIST_DELIMITERS)


def parse_detectors(value):
    return _split_on_delimiters(value, LIST_DELIMITERS)


def _dedupe(values):
    seen = set()
    out = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


# ------------------------------------------------
# OVERRIDE LAYER
# ------------------------------------------------
class Overrides:
    """Sparse patch over RuntimeConfig; ``None`` means the field is unset."""

    FIELDS = (
        "targets",
        "targets_file",
        "mode",
        "threads",
        "output_dir",
        "formats",
        "detectors",
        "dry_run",
        "summary_file",
    )

    def __init__(self, targets=None, targets_file=None, mode=None, threads=None,
                 output_dir=None, formats=None, detectors=None, dry_run=None,
                 summary_file=None):
        self.targets = targets
        self.targets_file = targets_file
        self.mode = mode
        self.threads = threads
        self.output_dir = output_dir
        self.formats = formats
        self.detectors = detectors
        self.dry_run = dry_run
        self.summary_file = summary_file

    def set_fields(self):
        return {name: getattr(self, name) for name in self.FIELDS if getattr(self, name) is not None}

    def __eq__(self, other):
        if not isinstance(other, Overrides):
            return NotImplemented
        return self.set_fields() == other.set_fields()

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.set_fields().items())
        return f"Overrides({fields})"


# ------------------------------------------------
# RUNTIME CONFIG
# ------------------------------------------------
class RuntimeConfig:
    def __init__(self, targets=None, mode="hybrid", threads=10, output_dir="scan-results",
                 formats=None, detectors=None, dry_run=False, summary_file=None):
        self.targets = list(targets or [])
        self.mode = mode
        self.threads = threads
        self.output_dir = output_dir
        self.formats = list(formats) if formats is not None else ["json", "csv"]
        self.detectors = list(detectors) if detectors is not None else ["version"]
        self.dry_run = dry_run
        self.summary_file = summary_file

    def __repr__(self):
        return (
            f"RuntimeConfig(targets={self.targets}, mode={self.mode}, threads={self.threads}, "
            f"output_dir={self.output_dir}, formats={self.formats}, detectors={self.detectors}, "
            f"dry_run={self.dry_run}, summary_file={self.summary_file})"
        )

    def apply(self, layer):
        if layer.targets is not None:
            self.targets = _dedupe(clean_list(layer.targets))

        # Applied right after the same layer's inline targets so the file wins.
        if layer.targets_file is not None:
            self.targets = _dedupe(read_targets_file(layer.targets_file))

        if layer.mode is not None:
            self.mode = layer.mode

        if layer.threads is not None:
            self.threads = layer.threads

        if layer.output_dir is not None:
            self.output_dir = layer.output_dir

        if layer.formats is not None:
            self.formats = clean_list(layer.formats)

        if layer.detectors is not None:
            self.detectors = clean_list(layer.detectors)

        if layer.dry_run is not None:
            self.dry_run = layer.dry_run

        if layer.summary_file is not None:
            self.summary_file = layer.summary_file or None

        return self

    def validate(self):
        """Fail on the first violated constraint."""
        if not self.targets:
            raise ConfigError(
                "no targets configured; provide --targets, --targets-file, or set WPHUNTER_TARGETS"
            )

        if not isinstance(self.threads, int) or isinstance(self.threads, bool) \
                or self.threads < 1 or self.threads > MAX_THREADS:
            raise ConfigError(f"threads must be between 1 and {MAX_THREADS} (got {self.threads})")

        if not self.mode:
            raise ConfigError("scan mode must be specified")

        if not self.formats:
            raise ConfigError("at least one output format must be specified")

        if not self.output_dir:
            raise ConfigError("output directory cannot be empty")

    def copy(self):
        return copy.deepcopy(self)


def default_runtime_config():
    return RuntimeConfig()


# ------------------------------------------------
# FILE LAYER
# ------------------------------------------------
def _str_or_none(raw, key):
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, (dict, list, bool)):
        raise ConfigError(f"config key '{key}' must be a string")
    return str(value)


def _list_or_none(raw, key, parser):
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, list):
        for item in value:
            if isinstance(item, (dict, list)):
                raise ConfigError(f"config key '{key}' must be a list of strings")
        return clean_list(value)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return parser(str(value))
    raise ConfigError(f"unsupported YAML type for '{key}'")


def overrides_from_file(path):
    raw = load_yaml(path)
    if raw is None:
        return Overrides()
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    threads = raw.get("threads")
    if threads is not None and (not isinstance(threads, int) or isinstance(threads, bool)):
        raise ConfigError(f"config key 'threads' must be an integer (got {threads!r})")

    dry_run = raw.get("dryRun")
    if dry_run is not None and not isinstance(dry_run, bool):
        raise ConfigError(f"config key 'dryRun' must be a boolean (got {dry_run!r})")

    return Overrides(
        targets=_list_or_none(raw, "targets", parse_targets_list),
        targets_file=_str_or_none(raw, "targetsFile"),
        mode=_str_or_none(raw, "mode"),
        threads=threads,
        output_dir=_str_or_none(raw, "outputDir"),
        formats=_list_or_none(raw, "formats", parse_formats),
        detectors=_list_or_none(raw, "detectors", parse_detectors),
        dry_run=dry_run,
        summary_file=_str_or_none(raw, "summaryFile"),
    )


# ------------------------------------------------
# ENVIRONMENT LAYER
# ------------------------------------------------
def _env(field, environ):
    for name in ENV_KEYS[field]:
        value = environ.get(name, "")
        if value != "":
            return value
    return None


def _env_list(field, environ, parser):
    # A value made only of delimiters leaves the field unset.
    value = _env(field, environ)
    if value is None:
        return None
    return parser(value) or None


def overrides_from_env(environ=None):
    """Build an override layer from the environment.

    A THREADS value that is not an integer, or a list value that parses to
    nothing, is dropped instead of replacing the lower layers.
    """
    environ = os.environ if environ is None else environ
    ov = Overrides()

    ov.targets = _env_list("targets", environ, parse_targets_list)

    ov.targets_file = _env("targets_file", environ)
    ov.mode = _env("mode", environ)

    value = _env("threads", environ)
    if value is not None:
        try:
            ov.threads = int(value.strip())
        except ValueError:
            log(f"Ignoring non-integer thread count from environment: {value!r}")

    ov.output_dir = _env("output_dir", environ)

    ov.formats = _env_list("formats", environ, parse_formats)

    ov.detectors = _env_list("detectors", environ, parse_detectors)

    value = _env("dry_run", environ)
    if value is not None:
        ov.dry_run = value.lower() == "true" or value == "1"

    ov.summary_file = _env("summary_file", environ)

    return ov


# ------------------------------------------------
# LOADER
# ------------------------------------------------
class Loader:
    def __init__(self, config_path=DEFAULT_CONFIG_PATH, environ=None):
        self.config_path = config_path
        self.environ = environ

    def resolved_path(self):
        return self.config_path or DEFAULT_CONFIG_PATH

    def load(self, overrides=None):
        cfg = default_runtime_config()
        path = self.resolved_path()

        if os.path.isfile(path):
            log(f"Loading config file: {path}")
            cfg.apply(overrides_from_file(path))

        cfg.apply(overrides_from_env(self.environ))
        cfg.apply(overrides or Overrides())
        return cfg
