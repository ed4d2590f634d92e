"""Tiny JSON-lines logger: stdout plus an optional file."""

import json
import sys
import time

from . import config


def log_line(d, path=None):
    """Write a single JSON line to stdout (and optional file)."""
    d["ts"] = d.get("ts") or int(time.time())
    s = json.dumps(d, separators=(",", ":"), default=str)
    try:
        sys.stdout.write(s + "\n")
        sys.stdout.flush()
    except (OSError, ValueError):
        # stdout closed under us (daemonised, or interpreter teardown)
        pass
    path = config.LOG_PATH if path is None else path
    if path:
        try:
            with open(path, "a") as f:
                f.write(s + "\n")
        except OSError:
            pass
