"""
detector_result.py
-------------------
A single detector finding for one target.
Created by a detector's detect() call and never modified afterwards.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DetectorResult:
    target: str
    detector: str
    severity: str
    summary: str
    metadata: dict = field(default_factory=dict, hash=False)
    confidence: float = 0.0

    def __post_init__(self):
        if not 0.0 <= float(self.confidence) <= 1.0:
            raise ValueError(f"confidence must be within [0, 1] (got {self.confidence})")
        object.__setattr__(self, "metadata", dict(self.metadata or {}))

    def serialize(self):
        """
        Serialize the result for detections/summary artifacts.
        Empty metadata and a zero confidence are left out.
        """
        data = {
            "target": self.target,
            "detector": self.detector,
            "severity": self.severity,
            "summary": self.summary,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        if self.confidence:
            data["confidence"] = self.confidence
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            target=data.get("target", ""),
            detector=data.get("detector", ""),
            severity=data.get("severity", ""),
            summary=data.get("summary", ""),
            metadata=data.get("metadata") or {},
            confidence=data.get("confidence", 0.0),
        )
