"""
events.py
----------
NDJSON progress events.

Every emitted event is one JSON object on its own line. Serialization and
the write happen under the same lock, so concurrent callers never produce
torn lines.
"""

import datetime
import json
import threading

from wphunter.core.utils import utc_now


SCAN_START = "scan-start"
ARTIFACT_WRITTEN = "artifact-written"
DETECTION = "detection"
DETECTORS_SKIPPED = "detectors-skipped"
SCAN_FINISHED = "scan-finished"
REPORT = "report"


class Event:
    def __init__(self, type, message="", fields=None, timestamp=None):
        self.type = type
        self.message = message
        self.fields = fields or {}
        self.timestamp = timestamp

    def __repr__(self):
        return f"Event(type={self.type}, message={self.message}, fields={self.fields})"

    def serialize(self):
        data = {
            "type": self.type,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.message:
            data["message"] = self.message
        if self.fields:
            data["fields"] = self.fields
        return data


def format_timestamp(moment):
    if moment.tzinfo is not None:
        moment = moment.astimezone(datetime.timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Emitter:
    def __init__(self, writer):
        self.writer = writer
        self._lock = threading.Lock()

    def emit(self, event):
        """Serialize ``event`` and append it as one line.

        A caller-supplied timestamp is kept; otherwise the current UTC time
        is used. Serialization and write errors propagate.
        """
        if event.timestamp is None:
            event.timestamp = utc_now()

        with self._lock:
            payload = json.dumps(event.serialize(), ensure_ascii=False)
            self.writer.write(payload + "\n")
            flush = getattr(self.writer, "flush", None)
            if flush is not None:
                flush()

    def __call__(self, type, message="", **fields):
        self.emit(Event(type, message=message, fields=fields))
