"""Writes scan artifacts: dry-run placeholders, detections, summaries and report stats."""

import os

from wphunter.core.utils import ensure_output_dir, rfc3339, write_json


PLACEHOLDER_NOTE = "dry-run placeholder artifact"

SUMMARY_FILE_MODE = 0o600


def scan_artifact_path(output_dir, timestamp, fmt):
    return os.path.join(output_dir, f"scan_{timestamp}.{fmt}")


def detections_artifact_path(output_dir, timestamp):
    return os.path.join(output_dir, f"detections_{timestamp}.json")


def write_placeholder_artifact(path, fmt, targets):
    parent = os.path.dirname(path)
    if parent:
        ensure_output_dir(parent)

    if fmt == "json":
        write_json(
            path,
            {
                "generatedAt": rfc3339(),
                "targets": list(targets),
                "note": PLACEHOLDER_NOTE,
            },
        )
        return

    if fmt == "csv":
        lines = ["target,status"]
        lines.extend(f"{target},placeholder" for target in targets)
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return

    raise ValueError(f"unsupported format {fmt}")


def write_detections_artifact(path, results):
    """Indented JSON array of results; an empty run is written as "[]\\n"."""
    write_json(path, [result.serialize() for result in results])


def write_summary(path, cfg, artifacts, results):
    write_json(
        path,
        {
            "generatedAt": rfc3339(),
            "targets": list(cfg.targets),
            "mode": cfg.mode,
            "artifacts": list(artifacts),
            "dryRun": cfg.dry_run,
            "detectors": list(cfg.detectors),
            "detections": [result.serialize() for result in results],
        },
    )


def build_report_stats(input_path):
    with open(input_path, "rb") as f:
        data = f.read()

    return {
        "input": input_path,
        "sizeBytes": len(data),
        "generatedAt": rfc3339(),
        "mentions": data.lower().count(b"vulnerability"),
    }


def write_report_summary(path, stats):
    write_json(path, stats, mode=SUMMARY_FILE_MODE)
