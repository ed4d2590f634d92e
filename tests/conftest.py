"""Shared fixtures: a deterministic collector, a service, a live HTTP server."""

import threading

import pytest

from telemetryd.server import make_server
from telemetryd.service import Service
from telemetryd.store import MetricSample


class FakeCollect:
    """Collector stand-in: fixed values, timestamp from the given clock."""

    def __init__(self, clock, cpu=12.5, mem=40.0):
        self.clock = clock
        self.cpu = cpu
        self.mem = mem
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return MetricSample(self.clock(), self.cpu, self.mem)


class Clock:
    """Manually advanced time source."""

    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt):
        self.t += dt


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def svc():
    """Service with real time, huge retention, tiny burners, sampler not started."""
    s = Service(interval=60, retention=1e12, rounds=1, factor=1)
    yield s
    s.shutdown(5)


@pytest.fixture
def base(svc):
    srv = make_server(svc, host="127.0.0.1", port=0)
    th = threading.Thread(target=srv.serve_forever, daemon=True)
    th.start()
    yield f"http://127.0.0.1:{srv.server_address[1]}"
    srv.shutdown()
    srv.server_close()
    th.join(5)
