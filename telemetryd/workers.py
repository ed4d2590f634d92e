"""
Background work:
- TaskGroup: counts live tasks so shutdown can join them all
- Sampler: periodic collect + append + evict, woken early by the stop event
- burn(): per-ingestion CPU load over a snapshot of the ingestion log
"""

import math
import threading
import time

from . import config
from .logs import log_line
from .prom import WORKERS, SAMPLES, TICK, BURN


# ---------- task tracking ----------

class TaskGroup:
    """Join barrier over threads. Holds a count of live tasks, not the tasks."""

    def __init__(self):
        self.n = 0
        self.closed = False
        self.cv = threading.Condition()

    @property
    def live(self):
        with self.cv:
            return self.n

    def spawn(self, name, fn, *a):
        """Register and start fn(*a) on a thread; False once the group is closed."""
        with self.cv:
            if self.closed:
                return False
            self.n += 1
            WORKERS.set(self.n)
        t = threading.Thread(target=self._run, args=(fn, a), name=name, daemon=True)
        try:
            t.start()
        except RuntimeError:
            self._done()
            raise
        return True

    def _run(self, fn, a):
        try:
            fn(*a)
        except Exception as e:
            log_line({"ev": "task_failed", "task": threading.current_thread().name, "err": repr(e)})
        finally:
            self._done()

    def _done(self):
        with self.cv:
            if self.n <= 0:
                raise RuntimeError("task deregistered more times than registered")
            self.n -= 1
            WORKERS.set(self.n)
            if self.n == 0:
                self.cv.notify_all()

    def close(self):
        with self.cv:
            self.closed = True

    def wait(self, timeout=None):
        """Block until no task is live. False if timeout ran out first."""
        with self.cv:
            return self.cv.wait_for(lambda: self.n == 0, timeout)


# ---------- sampler ----------

class Sampler:
    """Collects one sample per interval into the store and trims the old ones."""

    def __init__(self, store, collect, stop, interval=None, retention=None, clock=time.time):
        self.store = store
        self.collect = collect
        self.stop = stop
        self.interval = config.INTERVAL if interval is None else float(interval)
        self.retention = config.RETENTION if retention is None else float(retention)
        self.clock = clock
        # ticks from the loop and from queries must append in timestamp order
        self.lock = threading.Lock()

    def tick(self):
        with self.lock:
            s = self.collect()
            self.store.append(s)
        self.store.evict(self.clock() - self.retention)
        SAMPLES.set(len(self.store))
        TICK.inc()
        return s

    def run(self):
        while not self.stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                log_line({"ev": "sample_failed", "err": repr(e)})
        log_line({"ev": "sampler_stopped"})


# ---------- load generation ----------

def reduce(payload, factor=None):
    """Closed-form numeric reduction over the payload bytes; pure CPU."""
    factor = config.FACTOR if factor is None else factor
    n = len(payload)
    acc = 0.0
    for i in range(n * factor):
        v = float(i + payload[i % n])
        acc += math.sqrt(v) * math.sin(v) * math.cos(v)
    return acc


def burn(log, stop, rounds=None, factor=None):
    """Run `rounds` passes over fresh log snapshots. Returns False when cancelled."""
    rounds = config.ROUNDS if rounds is None else rounds
    t0 = time.perf_counter()
    done = 0
    cut = False
    for _ in range(rounds):
        if cut or stop.is_set():
            cut = True
            break
        for rec in log.snapshot():
            if stop.is_set():
                cut = True
                break
            reduce(rec.payload, factor)
            done += 1
    BURN.observe(time.perf_counter() - t0)
    if cut:
        log_line({"ev": "burn_cancelled", "records": done})
        return False
    return True
