"""
targets.py
-----------
Reads newline-delimited target files.

HOW IT WORKS:
1. Reject unsafe paths before touching the filesystem
2. Read line by line, trimming whitespace
3. Skip blank lines and '#' comments, keep encounter order

The path gate is lexical only. A symlink whose target lives outside the
intended directory is followed like any other file.
"""

import os

from wphunter.core.errors import TargetsFileError


MAX_PATH_BYTES = 4096

COMMENT_MARKER = "#"

DENIED_PATHS = [
    "/etc/passwd",
    "/etc/shadow",
    "/etc/gshadow",
    "/etc/sudoers",
    "/proc/",
    "/sys/",
    "/dev/",
]


def _is_denied(absolute_path):
    # POSIX normpath keeps a leading "//"
    if absolute_path.startswith("/"):
        absolute_path = "/" + absolute_path.lstrip("/")

    for denied in DENIED_PATHS:
        root = denied.rstrip("/")
        if absolute_path == root or absolute_path.startswith(root + "/"):
            return True
    return False


def check_targets_path(path):
    """Validate a targets file path and return its cleaned form."""
    if not path:
        raise TargetsFileError("targets file path cannot be empty")

    if "\x00" in path:
        raise TargetsFileError("targets file path contains a null byte")

    if len(path.encode("utf-8", errors="surrogateescape")) > MAX_PATH_BYTES:
        raise TargetsFileError(
            f"targets file path exceeds {MAX_PATH_BYTES} bytes"
        )

    cleaned = os.path.normpath(path)
    if ".." in cleaned.split(os.sep):
        raise TargetsFileError(f"targets file path escapes its base directory: {path}")

    if _is_denied(os.path.abspath(cleaned)):
        raise TargetsFileError(f"refusing to read system path as targets file: {path}")

    return cleaned


def read_targets_file(path):
    cleaned = check_targets_path(path)

    targets = []
    with open(cleaned, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith(COMMENT_MARKER):
                continue
            targets.append(line)

    return targets
