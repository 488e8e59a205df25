"""
severity.py
------------
Severity labels attached to detector results.
"""

INFO = "info"
LOW = "low"
WARNING = "warning"
HIGH = "high"
CRITICAL = "critical"

SEVERITY_LEVEL = {
    "version": INFO,
}

# Synthetic results produced when a detector raises.
DETECTOR_ERROR_SEVERITY = INFO


def get_severity(detector_name: str) -> str:
    """
    Returns the severity string for a given detector.
    """
    return SEVERITY_LEVEL.get(detector_name, INFO)
