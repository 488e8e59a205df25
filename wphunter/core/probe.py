"""
probe.py
---------
Drives the external wpprobe binary.

Only the invocation contract matters here: wpprobe receives the targets
file, mode, thread count and output path, writes its own results and
reports success through its exit status. Its output is never parsed.
"""

import shutil
import subprocess

from wphunter.core.errors import ToolError
from wphunter.core.utils import log


DEFAULT_BINARY = "wpprobe"
POLL_INTERVAL = 0.2
TERMINATE_GRACE = 5


class ProbeRunner:
    def __init__(self, binary=DEFAULT_BINARY, which=None, popen=None):
        self.binary = binary
        self.which = which or shutil.which
        self.popen = popen or subprocess.Popen

    def ensure_binary(self):
        path = self.which(self.binary)
        if not path:
            raise ToolError(f"{self.binary} binary not found in PATH")
        return path

    def scan_args(self, targets_file, mode, threads, output_path):
        return [
            self.binary,
            "scan",
            "-f", targets_file,
            "--mode", mode,
            "-o", output_path,
            "-t", str(threads),
        ]

    def _stop(self, proc):
        proc.terminate()
        try:
            proc.wait(timeout=TERMINATE_GRACE)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    def _run(self, ctx, args, stdout=None, stderr=None):
        ctx.check()
        log(f"Running: {' '.join(args)}")

        try:
            proc = self.popen(args, stdout=stdout, stderr=stderr)
        except FileNotFoundError as exc:
            raise ToolError(f"{self.binary} binary not found: {exc}") from exc

        try:
            while True:
                try:
                    returncode = proc.wait(timeout=POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if ctx.cancelled:
                        raise ctx.error()
        except BaseException:
            # Interrupts and SIGTERM exits must not leave wpprobe running.
            self._stop(proc)
            raise

        if returncode != 0:
            raise ToolError(f"{args[0]} {args[1]} exited with status {returncode}")

    def scan(self, ctx, targets_file, mode, threads, output_path, stdout=None, stderr=None):
        """Run one wpprobe scan, forwarding its stdout/stderr to the given streams."""
        self._run(ctx, self.scan_args(targets_file, mode, threads, output_path), stdout, stderr)

    def update(self, ctx, stdout=None, stderr=None):
        """Refresh wpprobe's vulnerability database."""
        self._run(ctx, [self.binary, "update"], stdout, stderr)

    def version(self, ctx, timeout=5):
        ctx.check()
        completed = subprocess.run(
            [self.binary, "--version"],
            check=False,
            text=True,
            capture_output=True,
            timeout=ctx.remaining(timeout),
        )
        if completed.returncode != 0:
            raise ToolError(f"{self.binary} --version exited with status {completed.returncode}")
        return completed.stdout.strip() or "unknown"

    def check_help(self, ctx, timeout=3):
        ctx.check()
        completed = subprocess.run(
            [self.binary, "--help"],
            check=False,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=ctx.remaining(timeout),
        )
        if completed.returncode != 0:
            raise ToolError(f"{self.binary} --help exited with status {completed.returncode}")
