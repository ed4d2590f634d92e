"""
Single-process telemetry service:
- POST /data appends to an in-memory log and spawns a CPU burner
- a background sampler records process CPU/memory into a retained series
- GET /metrics renders a time window of that series as exposition text
"""

__version__ = "0.1.0"
