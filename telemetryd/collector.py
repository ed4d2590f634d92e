"""Process resource sampler backed by psutil."""

import os
import time

import psutil

from .store import MetricSample

MB = 1024.0 * 1024.0


class Collector:
    """Reads RSS and CPU usage for one process and stamps a MetricSample.

    psutil computes cpu_percent as a delta since the previous call on the
    same Process handle, so the first reading is 0.0. On multi-core hosts
    the value can exceed 100; the exposition layer clamps it.
    """

    def __init__(self, pid=None, clock=time.time):
        self.proc = psutil.Process(pid or os.getpid())
        self.clock = clock
        self.proc.cpu_percent(interval=None)

    def __call__(self):
        with self.proc.oneshot():
            cpu = self.proc.cpu_percent(interval=None)
            rss = self.proc.memory_info().rss
        return MetricSample(self.clock(), float(cpu), rss / MB)
