"""Exception types shared by the config loader, scanner and detectors."""


class WPHunterError(Exception):
    """Base class for every error raised by wphunter itself."""


class ConfigError(WPHunterError, ValueError):
    """Missing/invalid settings or an unreadable config file."""


class TargetsFileError(ConfigError):
    """A targets file path was rejected before it was opened."""


class UnknownDetectorError(ConfigError):
    pass


class ToolError(WPHunterError):
    """The external scan binary is missing or exited with an error."""


class DetectorError(WPHunterError):
    pass


class ScanCancelled(WPHunterError):
    """Raised when the scan context is cancelled or its deadline passes.

    ``results`` holds whatever detector results were collected before the
    cancellation was observed.
    """

    def __init__(self, message="context canceled", results=None):
        super().__init__(message)
        self.results = list(results or [])
