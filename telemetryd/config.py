"""Env-driven defaults. Empty values count as unset."""

import os


def env(k, d=None):
    """Fetch an env var with a default, treat empty as missing."""
    v = os.getenv(k)
    if v is None or v == "":
        return d
    return v


PORT  = int(env("PORT", "8080"))
MPORT = int(env("METRICS_PORT", "9000"))

# Sampler cadence and how long samples are kept (seconds)
INTERVAL  = float(env("SAMPLE_INTERVAL", "2"))
RETENTION = float(env("RETENTION_SECONDS", "3600"))

# How long shutdown waits for background work to drain
GRACE = float(env("GRACE_SECONDS", "10"))

# Burner sizing: passes over the log, and reduction steps per payload byte
ROUNDS = int(env("BURN_ROUNDS", "10"))
FACTOR = int(env("BURN_FACTOR", "1000"))

# Optional log file (each line is also written to stdout as jsonl)
LOG_PATH = env("LOG_PATH", "")
