"""
main.py
---------
wphunter command line: init, scan, report, doctor, update.

NDJSON events go to stdout, human-readable progress to stderr.
"""

import argparse
import signal
import sys

from wphunter.core import events
from wphunter.core.config import (
    DEFAULT_CONFIG_PATH,
    MAX_THREADS,
    SCAN_MODES,
    Loader,
    Overrides,
    parse_detectors,
    parse_formats,
    parse_targets_list,
)
from wphunter.core.context import ScanContext
from wphunter.core.doctor import print_doctor_report, run_doctor_checks
from wphunter.core.errors import ConfigError, ScanCancelled, WPHunterError
from wphunter.core.events import Emitter, Event
from wphunter.core.probe import ProbeRunner
from wphunter.core.reporter import build_report_stats, write_report_summary
from wphunter.core.scanner import Scanner
from wphunter.core.utils import ensure_output_dir, info, set_verbose, warn
from wphunter.version import __version__


EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_RUNTIME = 3
EXIT_REPORT = 4
EXIT_INTERRUPTED = 130


# ------------------------------------------------
# RUNTIME FLAGS → OVERRIDES
# ------------------------------------------------
def add_runtime_flags(parser):
    # Defaults are None so only flags actually passed become overrides.
    parser.add_argument("--targets", help="Comma-separated list of targets (overrides config)")
    parser.add_argument("--targets-file", help="Path to a file with one target per line")
    parser.add_argument("--mode", help=f"Scan mode: {', '.join(SCAN_MODES)}")
    parser.add_argument("--threads", type=int, help=f"Number of concurrent threads (1-{MAX_THREADS})")
    parser.add_argument("--output-dir", help="Directory for scan artifacts")
    parser.add_argument("--formats", help="Comma-separated output formats (json,csv)")
    parser.add_argument("--detectors", help="Comma-separated detectors to run (version,...)")
    parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip wpprobe execution and emit placeholder artifacts",
    )
    parser.add_argument("--summary-file", help="Optional summary JSON output path")


def overrides_from_args(args):
    ov = Overrides()
    if args.targets is not None:
        ov.targets = parse_targets_list(args.targets)
    if args.targets_file is not None:
        ov.targets_file = args.targets_file
    if args.mode is not None:
        ov.mode = args.mode
    if args.threads is not None:
        ov.threads = args.threads
    if args.output_dir is not None:
        ov.output_dir = args.output_dir
    if args.formats is not None:
        ov.formats = parse_formats(args.formats)
    if args.detectors is not None:
        ov.detectors = parse_detectors(args.detectors)
    if args.dry_run is not None:
        ov.dry_run = args.dry_run
    if args.summary_file is not None:
        ov.summary_file = args.summary_file
    return ov


def load_config(args):
    loader = Loader(config_path=args.config)
    cfg = loader.load(overrides_from_args(args))
    return cfg


# ------------------------------------------------
# COMMANDS
# ------------------------------------------------
def cmd_init(args, out):
    try:
        cfg = load_config(args)
        cfg.validate()
        ensure_output_dir(cfg.output_dir)
    except (ConfigError, OSError) as exc:
        warn(f"Configuration error: {exc}")
        return EXIT_CONFIG

    if not args.skip_wpprobe_check and not cfg.dry_run:
        try:
            ProbeRunner().ensure_binary()
        except WPHunterError as exc:
            warn(str(exc))
            return EXIT_RUNTIME

    out.write(f"Environment looks good. Output will be stored in {cfg.output_dir}\n")
    return EXIT_OK


def cmd_scan(args, out, ctx=None, runner=None, registry=None):
    try:
        cfg = load_config(args)
        cfg.validate()
    except (ConfigError, OSError) as exc:
        warn(f"Configuration error: {exc}")
        return EXIT_CONFIG

    ctx = ctx or ScanContext(timeout=args.timeout)
    scanner = Scanner(Emitter(out), runner=runner, registry=registry)

    info(f"Loaded {len(cfg.targets)} targets (mode={cfg.mode}, dry-run={cfg.dry_run})")
    try:
        artifacts = scanner.run(ctx, cfg)
    except ScanCancelled as exc:
        warn(f"Scan cancelled: {exc}")
        return EXIT_INTERRUPTED
    except ConfigError as exc:
        warn(f"Configuration error: {exc}")
        return EXIT_CONFIG
    except (WPHunterError, OSError, ValueError) as exc:
        warn(f"Scan failed: {exc}")
        return EXIT_RUNTIME

    info(f"Scan complete → {len(artifacts)} artifact(s)")
    return EXIT_OK


def cmd_report(args, out):
    try:
        stats = build_report_stats(args.input)
        Emitter(out).emit(Event(events.REPORT, message="Report generated", fields=stats))
        if args.summary_file:
            write_report_summary(args.summary_file, stats)
            info(f"Summary written to {args.summary_file}")
    except (OSError, ValueError) as exc:
        warn(f"Report failed: {exc}")
        return EXIT_REPORT
    return EXIT_OK


def cmd_doctor(args, out, runner=None, session=None):
    try:
        cfg = load_config(args)
    except (ConfigError, OSError) as exc:
        warn(f"Failed to load configuration: {exc}")
        return EXIT_CONFIG

    ctx = ScanContext(timeout=args.timeout)
    checks = run_doctor_checks(ctx, cfg, runner=runner, session=session)
    print_doctor_report(checks)

    if any(check.failed for check in checks):
        warn("Doctor checks failed")
        return EXIT_RUNTIME

    out.write("All checks passed. System is ready.\n")
    return EXIT_OK


def cmd_update(args, out, runner=None):
    runner = runner or ProbeRunner()
    ctx = ScanContext(timeout=args.timeout)
    try:
        runner.ensure_binary()
        info("Updating wpprobe database...")
        runner.update(ctx, stdout=sys.stderr, stderr=sys.stderr)
    except ScanCancelled as exc:
        warn(f"Update cancelled: {exc}")
        return EXIT_INTERRUPTED
    except (WPHunterError, OSError) as exc:
        warn(f"Update failed: {exc}")
        return EXIT_RUNTIME
    out.write("wpprobe database updated\n")
    return EXIT_OK


# ------------------------------------------------
# PARSER
# ------------------------------------------------
def build_parser():
    parser = argparse.ArgumentParser(prog="wphunter", description="Worker-friendly wrapper around wpprobe")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to wphunter.config.yml (optional)")
    parser.add_argument("--verbose", action="store_true", help="Print debug output to stderr")
    parser.add_argument("--version", action="version", version=f"wphunter version {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Validate the execution environment and configuration")
    add_runtime_flags(init_parser)
    init_parser.add_argument(
        "--skip-wpprobe-check",
        action="store_true",
        help="Allow init to pass even if wpprobe is missing",
    )

    scan_parser = subparsers.add_parser("scan", help="Run wpprobe and detectors")
    add_runtime_flags(scan_parser)
    scan_parser.add_argument("--timeout", type=float, default=None, help="Overall deadline in seconds")

    report_parser = subparsers.add_parser("report", help="Generate aggregate stats from a scan artifact")
    report_parser.add_argument("--input", required=True, help="Path to JSON scan artifact")
    report_parser.add_argument("--summary-file", help="Optional path to store summary JSON")

    doctor_parser = subparsers.add_parser("doctor", help="Validate dependencies and network reachability")
    add_runtime_flags(doctor_parser)
    doctor_parser.add_argument("--timeout", type=float, default=30, help="Timeout in seconds for network checks")

    update_parser = subparsers.add_parser("update", help="Refresh the wpprobe vulnerability database")
    update_parser.add_argument("--timeout", type=float, default=None, help="Deadline in seconds")

    return parser


COMMANDS = {
    "init": cmd_init,
    "scan": cmd_scan,
    "report": cmd_report,
    "doctor": cmd_doctor,
    "update": cmd_update,
}


def main(argv=None, out=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_verbose(True)
    out = out or sys.stdout

    try:
        return COMMANDS[args.command](args, out)
    except KeyboardInterrupt:
        warn("Interrupted")
        return EXIT_INTERRUPTED


def run():
    signal.signal(signal.SIGTERM, lambda *_: sys.exit(EXIT_INTERRUPTED))
    sys.exit(main())


# ------------------------------------------------
# ENTRY POINT
# ------------------------------------------------
if __name__ == "__main__":
    run()
