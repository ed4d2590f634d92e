"""The telemetry core: store + log + task group + one stop event, wired together."""

import threading
import time

from . import config
from .collector import Collector
from .expo import render
from .logs import log_line
from .prom import INGESTED, INGESTED_BYTES
from .store import RetentionStore, IngestionLog
from .workers import TaskGroup, Sampler, burn


class Service:
    """Owns all mutable state. Handlers and background tasks get a reference to it."""

    def __init__(self, collect=None, interval=None, retention=None,
                 rounds=None, factor=None, clock=time.time):
        self.store = RetentionStore()
        self.log = IngestionLog(clock=clock)
        self.tasks = TaskGroup()
        self.stop = threading.Event()
        self.rounds = config.ROUNDS if rounds is None else rounds
        self.factor = config.FACTOR if factor is None else factor
        self.sampler = Sampler(self.store, collect or Collector(), self.stop,
                               interval=interval, retention=retention, clock=clock)

    def start(self):
        """Launch the sampling loop as a tracked task."""
        return self.tasks.spawn("sampler", self.sampler.run)

    @property
    def stopping(self):
        return self.stop.is_set()

    def ingest(self, payload):
        """Append payload and spawn a burner for it.

        Returns (sequence_id, spawned). Once shutdown has begun the payload is
        still recorded but no burner starts.
        """
        sid = self.log.append(payload)
        INGESTED.inc()
        INGESTED_BYTES.inc(len(payload))
        if self.stopping:
            log_line({"ev": "spawn_declined", "id": sid})
            return sid, False
        ok = self.tasks.spawn(f"burn-{sid}", burn, self.log, self.stop, self.rounds, self.factor)
        if not ok:
            log_line({"ev": "spawn_declined", "id": sid})
        return sid, ok

    def query(self, tr):
        """Take a fresh sample, then render everything retained inside tr."""
        self.sampler.tick()
        return render(self.store.snapshot_range(tr))

    def shutdown(self, grace=None):
        """Close the task group, broadcast stop, wait for the drain.

        True when every task finished within grace seconds. Nothing is killed
        on timeout; the caller decides how to report it.
        """
        grace = config.GRACE if grace is None else grace
        self.tasks.close()
        self.stop.set()
        t0 = time.monotonic()
        ok = self.tasks.wait(grace)
        ms = int((time.monotonic() - t0) * 1000)
        if ok:
            log_line({"ev": "drained", "ms": ms})
        else:
            log_line({"ev": "shutdown_timeout", "ms": ms, "live": self.tasks.live})
        return ok

    def health(self):
        return {"ok": not self.stopping, "workers": self.tasks.live,
                "samples": len(self.store), "records": len(self.log)}
