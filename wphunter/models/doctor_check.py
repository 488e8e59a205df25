"""
doctor_check.py
----------------
Outcome of a single environment diagnostic.
"""

PASS = "pass"
FAIL = "fail"
SKIPPED = "skipped"

STATUS_SYMBOLS = {
    PASS: "✓",
    FAIL: "✗",
    SKIPPED: "⊘",
}


class DoctorCheck:
    def __init__(self, name, status, detail="", error=None):
        self.name = name
        self.status = status
        self.detail = detail
        self.error = error

    def __repr__(self):
        return f"DoctorCheck(name={self.name}, status={self.status}, detail={self.detail}, error={self.error})"

    @property
    def symbol(self):
        return STATUS_SYMBOLS.get(self.status, "?")

    @property
    def failed(self):
        return self.error is not None

    def serialize(self):
        return {
            "name": self.name,
            "status": self.status,
            "detail": self.detail,
            "error": str(self.error) if self.error is not None else None,
        }
