"""Self-instrumentation, exported with prometheus_client on a side port."""

from prometheus_client import start_http_server, Counter, Histogram, Gauge

REQ = Counter(
    "telemetryd_hits_total", "HTTP hits",
    ["path", "code", "method"]
)
LAT = Histogram(
    "telemetryd_request_seconds", "HTTP latency seconds",
    ["path", "code", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10)
)
INP = Gauge("telemetryd_inprogress", "Requests in progress", ["path"])

INGESTED = Counter("telemetryd_ingested_total", "Payloads appended to the ingestion log")
INGESTED_BYTES = Counter("telemetryd_ingested_bytes_total", "Payload bytes appended")
WORKERS = Gauge("telemetryd_workers_live", "Background tasks registered and not yet finished")
SAMPLES = Gauge("telemetryd_samples_retained", "Metric samples currently retained")

TICK = Counter("telemetryd_sampler_ticks_total", "Sampler ticks")
BURN = Histogram("telemetryd_burn_seconds", "Load-generation worker run time (s)",
                 buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60))


def start(port):
    """Serve the registry on its own port; 0 leaves it off."""
    if port:
        start_http_server(port)
    return port
