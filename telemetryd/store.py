"""
In-memory state guarded by locks:
- RetentionStore: time-ordered metric samples with front-trim eviction
- IngestionLog: append-only record of submitted payloads

The two structures have independent locks and nothing here takes both.
"""

import collections
import re
import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class MetricSample:
    """One sampler reading. Values are stored raw and clamped on render."""
    timestamp: float
    cpu_percent: float
    mem_mb: float


@dataclass(frozen=True)
class IngestionRecord:
    sequence_id: int
    payload: bytes
    received_at: float


class BadRange(ValueError):
    """Query window is missing, not an integer, or empty."""


_INT = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class TimeRange:
    """Inclusive [start, end] window in Unix seconds, end > start."""
    start: float
    end: float

    def __post_init__(self):
        if not self.end > self.start:
            raise BadRange("end_time must be greater than start_time")

    def __contains__(self, ts):
        return self.start <= ts <= self.end


def parse_range(start, end):
    """Build a TimeRange from raw start_time/end_time query values."""
    vals = []
    for name, raw in (("start_time", start), ("end_time", end)):
        if raw is None or raw == "":
            raise BadRange(f"missing {name}")
        if not _INT.fullmatch(raw):
            raise BadRange(f"{name} must be an integer Unix timestamp")
        vals.append(int(raw))
    return TimeRange(vals[0], vals[1])


# ---------- metric samples ----------

class RetentionStore:
    """Samples in append (= time) order. One producer appends, eviction trims the front."""

    def __init__(self):
        self.d = collections.deque()
        self.lock = threading.Lock()

    def append(self, sample):
        with self.lock:
            self.d.append(sample)

    def evict(self, cutoff):
        """Drop leading samples older than cutoff; returns how many went."""
        n = 0
        with self.lock:
            while self.d and self.d[0].timestamp < cutoff:
                self.d.popleft()
                n += 1
        return n

    def snapshot_range(self, tr):
        """Samples with tr.start <= timestamp <= tr.end, in store order."""
        with self.lock:
            out = []
            for s in self.d:
                if s.timestamp > tr.end:
                    break
                if s.timestamp in tr:
                    out.append(s)
            return out

    def __len__(self):
        with self.lock:
            return len(self.d)


# ---------- ingestion ----------

class IngestionLog:
    """Append-only payload log. Never trimmed."""

    def __init__(self, clock=time.time):
        self.records = []
        self.lock = threading.Lock()
        self.clock = clock

    def append(self, payload):
        """Record payload under the next sequence id and return that id."""
        with self.lock:
            sid = len(self.records) + 1
            self.records.append(IngestionRecord(sid, bytes(payload), self.clock()))
            return sid

    def snapshot(self):
        """Copy of all records; safe to iterate without the lock."""
        with self.lock:
            return list(self.records)

    def __len__(self):
        with self.lock:
            return len(self.records)
