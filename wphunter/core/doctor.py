"""
doctor.py
----------
Environment diagnostics:
- Python runtime
- wpprobe binary presence and functionality
- Network reachability of the first few targets
- Configuration validity and output directory
"""

import platform
import subprocess

import requests
from requests.exceptions import RequestException
from rich.table import Table

from wphunter.core.errors import ConfigError, ToolError, WPHunterError
from wphunter.core.probe import ProbeRunner
from wphunter.core.utils import console, ensure_output_dir
from wphunter.models.doctor_check import FAIL, PASS, SKIPPED, DoctorCheck


MAX_NETWORK_CHECKS = 3
NETWORK_TIMEOUT = 5


def check_python_version():
    return DoctorCheck("Python Runtime", PASS, f"Version {platform.python_version()}")


def check_probe_binary(ctx, runner, dry_run):
    if dry_run:
        return DoctorCheck("wpprobe Binary", SKIPPED, "Skipped (dry-run mode)")

    try:
        runner.ensure_binary()
    except ToolError as exc:
        return DoctorCheck("wpprobe Binary", FAIL, "Not found in PATH", exc)

    try:
        detail = f"Version {runner.version(ctx)}"
    except (OSError, WPHunterError, subprocess.SubprocessError):
        detail = "Available"

    return DoctorCheck("wpprobe Binary", PASS, detail)


def check_probe_functionality(ctx, runner):
    try:
        runner.check_help(ctx)
    except (OSError, WPHunterError, subprocess.SubprocessError) as exc:
        return DoctorCheck("wpprobe Functionality", FAIL, "Binary found but not executable", exc)
    return DoctorCheck("wpprobe Functionality", PASS, "Binary is executable")


def check_network_reachability(ctx, targets, session=None):
    session = session or requests.Session()
    checks = []

    for target in targets[:MAX_NETWORK_CHECKS]:
        name = f"Network: {target}"
        if ctx.cancelled:
            checks.append(DoctorCheck(name, FAIL, "Cancelled", ctx.error()))
            continue

        try:
            response = session.head(
                target,
                timeout=ctx.remaining(NETWORK_TIMEOUT),
                allow_redirects=False,
            )
        except RequestException as exc:
            # MissingSchema, InvalidSchema and InvalidURL are also ValueErrors
            detail = "Invalid URL" if isinstance(exc, ValueError) else "Unreachable"
            checks.append(DoctorCheck(name, FAIL, detail, exc))
            continue

        response.close()
        checks.append(DoctorCheck(name, PASS, f"HTTP {response.status_code}"))

    remaining = len(targets) - MAX_NETWORK_CHECKS
    if remaining > 0:
        checks.append(
            DoctorCheck(f"Network: ... ({remaining} more targets)", SKIPPED, "Skipped for brevity")
        )

    return checks


def check_configuration(cfg):
    try:
        cfg.validate()
    except ConfigError as exc:
        return DoctorCheck("Configuration", FAIL, "Invalid configuration", exc)
    return DoctorCheck("Configuration", PASS, f"{len(cfg.targets)} targets, mode={cfg.mode}")


def check_output_directory(output_dir):
    try:
        ensure_output_dir(output_dir)
    except (OSError, WPHunterError) as exc:
        return DoctorCheck("Output Directory", FAIL, output_dir or "(empty)", exc)
    return DoctorCheck("Output Directory", PASS, output_dir)


def run_doctor_checks(ctx, cfg, runner=None, session=None):
    runner = runner or ProbeRunner()
    checks = [check_python_version()]

    binary_check = check_probe_binary(ctx, runner, cfg.dry_run)
    checks.append(binary_check)

    if binary_check.status == PASS:
        checks.append(check_probe_functionality(ctx, runner))

    if cfg.targets and not cfg.dry_run:
        checks.extend(check_network_reachability(ctx, cfg.targets, session=session))

    checks.append(check_configuration(cfg))
    checks.append(check_output_directory(cfg.output_dir))
    return checks


def print_doctor_report(checks, out=None):
    out = out or console
    table = Table(title="Environment diagnostics", style="green")
    table.add_column("", justify="center")
    table.add_column("Check", style="cyan")
    table.add_column("Detail")

    for check in checks:
        table.add_row(check.symbol, check.name, check.detail)
    out.print(table)

    for check in checks:
        if check.error is not None:
            out.print(f"   {check.name}: {check.error}", markup=False, style="red")
