"""
scanner.py
-----------
Central scan pipeline that:
- Validates the merged configuration
- Materializes targets into a temporary file
- Runs wpprobe once per output format (or writes dry-run placeholders)
- Runs configured detectors and writes their results
- Emits NDJSON progress events and an optional summary file

Every step can abort the run; only per-detector failures are absorbed.
"""

import contextlib
import os
import sys
import tempfile

from wphunter.core import events, reporter
from wphunter.core.detectors import default_registry, run_detectors
from wphunter.core.events import Event
from wphunter.core.probe import ProbeRunner
from wphunter.core.utils import artifact_timestamp, ensure_output_dir, info, log


@contextlib.contextmanager
def materialize_targets(targets):
    """Write targets one per line to a temp file, removed on exit."""
    fd, path = tempfile.mkstemp(prefix="wphunter-targets-", suffix=".txt")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for target in targets:
                f.write(target + "\n")
        yield path
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.remove(path)


def _normalized_formats(formats):
    out = []
    for fmt in formats:
        fmt = fmt.strip().lower()
        if fmt:
            out.append(fmt)
    return out


class Scanner:
    def __init__(self, emitter, runner=None, registry=None, tool_output=None):
        self.emitter = emitter
        self.runner = runner or ProbeRunner()
        self.registry = registry or default_registry()
        self.tool_output = tool_output or sys.stderr

    def _emit(self, type, message="", **fields):
        self.emitter.emit(Event(type, message=message, fields=fields))

    # ------------------------------------------------ #
    # Formats → artifacts
    # ------------------------------------------------ #
    def _write_scan_artifacts(self, ctx, cfg, targets_file, timestamp):
        artifacts = []

        for fmt in _normalized_formats(cfg.formats):
            output_path = reporter.scan_artifact_path(cfg.output_dir, timestamp, fmt)

            if cfg.dry_run:
                reporter.write_placeholder_artifact(output_path, fmt, cfg.targets)
            else:
                info(f"Running wpprobe ({fmt}) → {output_path}")
                self.runner.scan(
                    ctx,
                    targets_file=targets_file,
                    mode=cfg.mode,
                    threads=cfg.threads,
                    output_path=output_path,
                    stdout=self.tool_output,
                    stderr=self.tool_output,
                )

            artifacts.append(output_path)
            self._emit(events.ARTIFACT_WRITTEN, path=output_path, format=fmt)

        return artifacts

    # ------------------------------------------------ #
    # Detectors
    # ------------------------------------------------ #
    def _run_detectors(self, ctx, cfg, timestamp):
        detectors = self.registry.build_detectors(cfg.detectors)
        info(f"Running {len(detectors)} detector(s) against {len(cfg.targets)} target(s)")
        results = run_detectors(ctx, detectors, cfg.targets)

        path = reporter.detections_artifact_path(cfg.output_dir, timestamp)
        reporter.write_detections_artifact(path, results)
        self._emit(events.ARTIFACT_WRITTEN, path=path, format="json", kind="detections")

        for result in results:
            self._emit(
                events.DETECTION,
                message=result.summary,
                target=result.target,
                detector=result.detector,
                severity=result.severity,
                confidence=result.confidence,
            )

        return path, results

    def run(self, ctx, cfg):
        cfg.validate()
        ensure_output_dir(cfg.output_dir)

        with materialize_targets(cfg.targets) as targets_file:
            log(f"Targets written to {targets_file}")
            self._emit(
                events.SCAN_START,
                message="Starting scan",
                targets=len(cfg.targets),
                mode=cfg.mode,
                dryRun=cfg.dry_run,
            )

            if not cfg.dry_run:
                self.runner.ensure_binary()

            timestamp = artifact_timestamp()
            artifacts = self._write_scan_artifacts(ctx, cfg, targets_file, timestamp)

            results = []
            if cfg.detectors and not cfg.dry_run:
                path, results = self._run_detectors(ctx, cfg, timestamp)
                artifacts.append(path)
            elif cfg.detectors:
                self._emit(
                    events.DETECTORS_SKIPPED,
                    message="Detectors skipped in dry-run mode",
                    detectors=list(cfg.detectors),
                )

            if cfg.summary_file:
                reporter.write_summary(cfg.summary_file, cfg, artifacts, results)
                info(f"Summary written: {cfg.summary_file}")

            self._emit(events.SCAN_FINISHED, message="Scan complete", artifacts=len(artifacts))
            return artifacts


def run_scan(ctx, cfg, emitter, runner=None, registry=None, tool_output=None):
    return Scanner(emitter, runner=runner, registry=registry, tool_output=tool_output).run(ctx, cfg)
