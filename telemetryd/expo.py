"""Exposition text rendering for retained samples."""

import io

HEADER = (
    "# HELP cpu_percent CPU usage percent\n"
    "# TYPE cpu_percent gauge\n"
    "# HELP mem_mb Memory usage in MB\n"
    "# TYPE mem_mb gauge\n"
)

CONTENT_TYPE = "text/plain"


def clamp_cpu(v): return max(0.0, min(100.0, float(v)))
def clamp_mem(v): return max(0.0, float(v))


def epoch_ms(ts):
    return int(ts * 1000)


def render(samples):
    """Header, then a cpu_percent and a mem_mb line per sample, in input order."""
    b = io.StringIO()
    b.write(HEADER)
    for s in samples:
        ms = epoch_ms(s.timestamp)
        b.write(f"cpu_percent {clamp_cpu(s.cpu_percent):.2f} {ms}\n")
        b.write(f"mem_mb {clamp_mem(s.mem_mb):.2f} {ms}\n")
    return b.getvalue()
