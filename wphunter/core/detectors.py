"""Detector registry and sequential runner."""

from wphunter.core.errors import ScanCancelled, UnknownDetectorError
from wphunter.core.utils import log
from wphunter.models.detector_result import DetectorResult
from wphunter.models.severity import DETECTOR_ERROR_SEVERITY


class Detector:
    """Interface implemented by in-process detectors.

    ``detect`` may perform network I/O and must honour the scan context.
    It returns a DetectorResult or raises; it must not touch shared state.
    """

    name = ""

    def detect(self, ctx, target):
        raise NotImplementedError


class Registry:
    """Maps detector names to zero-argument factories."""

    def __init__(self, factories=None):
        self.factories = dict(factories or {})

    def names(self):
        return sorted(self.factories)

    def build_detectors(self, names):
        unknown = [name for name in names if name not in self.factories]
        if unknown:
            raise UnknownDetectorError(
                f"unknown detector: {unknown[0]} (available: {', '.join(self.names())})"
            )

        detectors = []
        seen = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            detectors.append(self.factories[name]())
        return detectors


def default_registry():
    from wphunter.modules.version import VersionDetector

    return Registry({"version": VersionDetector})


def _error_result(detector, target, exc):
    return DetectorResult(
        target=target,
        detector=detector.name,
        severity=DETECTOR_ERROR_SEVERITY,
        summary=f"detector error: {exc}",
    )


def run_detectors(ctx, detectors, targets):
    """Run every detector against every target, in order.

    A detector that raises contributes a synthetic error result instead of
    aborting the run. On cancellation ScanCancelled is raised carrying the
    results gathered before it; the in-flight call's outcome is dropped.
    """
    results = []
    if not detectors or not targets:
        return results

    for target in targets:
        for detector in detectors:
            ctx.check(results)

            try:
                result = detector.detect(ctx, target)
            except ScanCancelled as exc:
                raise ScanCancelled(str(exc), results=results) from exc
            except Exception as exc:
                if ctx.cancelled:
                    raise ctx.error(results)
                log(f"Detector {detector.name} failed on {target}: {exc}")
                results.append(_error_result(detector, target, exc))
                continue

            ctx.check(results)
            results.append(result)

    return results
