"""Command line: run the server, or poke a running one (push payloads, query a window)."""

import argparse
import json
import os
import sys
import time

from . import config


def cli_push(base, n, size=64):
    """POST n random payloads to /data; prints how many were accepted."""
    import requests
    ok = 0
    for _ in range(n):
        try:
            r = requests.post(base + "/data", data=os.urandom(size), timeout=3)
            if r.status_code == 202:
                ok += 1
        except requests.RequestException:
            pass
    print(json.dumps({"pushed": ok, "of": n}))
    return ok


def cli_query(base, secs):
    """Print the exposition text for the last `secs` seconds."""
    import requests
    end = int(time.time()) + 1
    r = requests.get(base + "/metrics",
                     params={"start_time": end - max(1, secs), "end_time": end},
                     timeout=5)
    sys.stdout.write(r.text)
    return r.status_code


def build_parser():
    ap = argparse.ArgumentParser(prog="telemetryd")
    ap.add_argument("--serve", action="store_true")
    ap.add_argument("--port", type=int, default=config.PORT)
    ap.add_argument("--metrics-port", type=int, default=config.MPORT)
    ap.add_argument("--grace", type=float, default=config.GRACE)
    ap.add_argument("--push", type=int, default=0)
    ap.add_argument("--size", type=int, default=64)
    ap.add_argument("--query", type=int, default=0)
    ap.add_argument("--base", default=f"http://localhost:{config.PORT}")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.serve or (args.push == 0 and args.query == 0):
        from .server import main as serve_main
        serve_main(args.port, args.metrics_port, args.grace)
    else:
        if args.push > 0:  cli_push(args.base, args.push, args.size)
        if args.query > 0: cli_query(args.base, args.query)


if __name__ == "__main__":
    main()
