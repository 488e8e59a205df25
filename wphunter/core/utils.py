"""Utility functions used across wphunter: YAML/JSON files and console output."""

import datetime
import json
import os

import yaml
from rich.console import Console

from wphunter.core.errors import ConfigError


console = Console(stderr=True, highlight=False)

_VERBOSE = {"enabled": bool(os.getenv("WPHUNTER_DEBUG"))}


def set_verbose(enabled):
    _VERBOSE["enabled"] = bool(enabled)


def is_verbose():
    return _VERBOSE["enabled"]


def info(message):
    console.print(f"[+] {message}", markup=False)


def warn(message):
    console.print(f"[!] {message}", markup=False, style="yellow")


def log(message):
    if is_verbose():
        console.print(f"[DEBUG] {message}", markup=False, style="dim")


def load_yaml(file_path):
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error parsing YAML file {file_path}: {exc}") from exc


def ensure_output_dir(path):
    if not path:
        raise ConfigError("output directory cannot be empty")
    os.makedirs(path, mode=0o755, exist_ok=True)


def write_json(path, data, mode=None):
    """Write indented JSON followed by a single trailing newline."""
    parent = os.path.dirname(path)
    if parent:
        ensure_output_dir(parent)

    payload = json.dumps(data, indent=2) + "\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(payload)
    if mode is not None:
        os.chmod(path, mode)


def utc_now():
    return datetime.datetime.now(datetime.timezone.utc)


def rfc3339(moment=None):
    moment = moment or utc_now()
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def artifact_timestamp(moment=None):
    moment = moment or utc_now()
    return moment.strftime("%Y%m%d_%H%M%S")
