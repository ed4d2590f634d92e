"""HTTP binding for the telemetry core, plus process lifecycle (signals, drain)."""

import json
import signal
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlparse, parse_qs

from . import config, prom
from .expo import CONTENT_TYPE
from .logs import log_line
from .service import Service
from .store import BadRange, parse_range

OK_BODY = "Data received\n"
MAX_LINE = 65537

# path -> allowed methods
ROUTES = {
    "/data": ("POST",),
    "/metrics": ("GET",),
    "/healthz": ("GET",),
}


def jb(o): return json.dumps(o, separators=(",", ":")).encode()


class Handler(BaseHTTPRequestHandler):
    """Routes for /data, /metrics, /healthz. `svc` is bound by make_server."""
    svc = None
    protocol_version = "HTTP/1.1"

    def log_message(self, f, *a):  # silence default http.server logging
        pass

    def do_GET(self):    self._d("GET")
    def do_POST(self):   self._d("POST")
    def do_PUT(self):    self._d("PUT")
    def do_DELETE(self): self._d("DELETE")

    def _send(self, c, b, ct):
        self._resp_code = c
        self._started = True
        try:
            self.send_response(c)
            self.send_header("Content-Type", ct)
            self.send_header("Content-Length", str(len(b)))
            self.end_headers()
            self.wfile.write(b)
        except OSError as e:
            # best effort: client went away or timed out, nothing to retry
            self.close_connection = True
            log_line({"ev": "write_failed", "p": self.path, "c": c, "err": repr(e)})

    def _t(self, c, s, ct="text/plain"):
        self._send(c, s.encode() if not isinstance(s, bytes) else s, ct)

    def _j(self, c, o):
        self._send(c, jb(o), "application/json")

    def _body(self):
        """Raw request body; None when it cannot be read in full."""
        te = self.headers.get("Transfer-Encoding", "").lower()
        if te:
            if te.split(",")[-1].strip() != "chunked":
                return None
            return self._chunked()
        try:
            l = int(self.headers.get("Content-Length", "0") or "0")
        except ValueError:
            return None
        if l < 0:
            return None
        if l == 0:
            return b""
        b = self.rfile.read(l)
        if len(b) != l:
            return None
        return b

    def _chunked(self):
        """Decode a chunked body: hex size line, data, CRLF, until a 0 chunk."""
        out = []
        while True:
            line = self.rfile.readline(MAX_LINE)
            try:
                n = int(line.split(b";", 1)[0].strip(), 16)
            except ValueError:
                return None
            if n < 0:
                return None
            if n == 0:
                break
            b = self.rfile.read(n)
            if len(b) != n or self.rfile.read(2) != b"\r\n":
                return None
            out.append(b)
        # trailer section ends with an empty line
        while True:
            t = self.rfile.readline(MAX_LINE)
            if not t:
                return None
            if t in (b"\r\n", b"\n"):
                break
        return b"".join(out)

    def _d(self, m):
        """Main dispatcher."""
        t0 = time.perf_counter()
        u = urlparse(self.path)
        p = u.path
        rid = self.headers.get("X-Request-Id") or str(int(time.time() * 1000))
        lp = p if p in ROUTES else "other"
        prom.INP.labels(path=lp).inc()
        self._resp_code = 500
        self._started = False

        try:
            allowed = ROUTES.get(p)
            if allowed is None:
                self.close_connection = True
                self._t(404, "not found\n")
            elif m not in allowed:
                self.close_connection = True
                self._t(405, f"Only {', '.join(allowed)} supported\n")

            elif p == "/data":
                b = self._body()
                if b is None:
                    self.close_connection = True
                    self._t(400, "Failed to read body\n")
                else:
                    self.svc.ingest(b)
                    self._t(202, OK_BODY)

            elif p == "/metrics":
                q = parse_qs(u.query)
                try:
                    tr = _range(q)
                except BadRange as e:
                    self._t(400, f"Invalid timestamps: {e}\n")
                else:
                    self._t(200, self.svc.query(tr), CONTENT_TYPE)

            elif p == "/healthz":
                h = self.svc.health()
                self._j(200 if h["ok"] else 503, h)

        except Exception as e:
            log_line({"ev": "handler_error", "p": p, "err": repr(e), "rid": rid})
            self.close_connection = True
            if not self._started:
                self._t(500, "internal error\n")
        finally:
            prom.INP.labels(path=lp).dec()
            dt = max(0.0, time.perf_counter() - t0)
            rc = self._resp_code
            prom.REQ.labels(path=lp, code=str(rc), method=m).inc()
            prom.LAT.labels(path=lp, code=str(rc), method=m).observe(dt)
            log_line({"m": m, "p": p, "c": rc, "ms": int(dt * 1000), "rid": rid})


def _range(q):
    return parse_range(q.get("start_time", [None])[0], q.get("end_time", [None])[0])


# ---------- serve ----------

def make_server(svc, host="", port=None):
    """HTTP server whose handler is bound to svc. Port 0 picks a free port."""
    port = config.PORT if port is None else port
    h = type("BoundHandler", (Handler,), {"svc": svc})
    srv = ThreadingHTTPServer((host, port), h)
    srv.daemon_threads = True
    return srv


def serve(port=None, mport=None, grace=None):
    """Wire service + metrics exporter + HTTP server; drain on SIGINT/SIGTERM.

    Returns the process exit code: 0 on a clean drain, 1 when background work
    outlived the grace period.
    """
    mport = config.MPORT if mport is None else mport
    grace = config.GRACE if grace is None else grace

    svc = Service()
    svc.start()
    prom.start(mport)
    srv = make_server(svc, port=port)
    log_line({"ev": "serve", "port": srv.server_address[1], "mport": mport})

    th = threading.Thread(target=srv.serve_forever, name="http", daemon=True)
    th.start()

    quit_ev = threading.Event()

    def stop(sig, frm):
        quit_ev.set()

    signal.signal(signal.SIGINT,  stop)
    signal.signal(signal.SIGTERM, stop)

    # Event.wait with a timeout lets the main thread run signal handlers
    while not quit_ev.wait(0.5):
        pass

    log_line({"ev": "shutdown", "grace": grace})
    ok = svc.shutdown(grace)
    srv.shutdown()
    srv.server_close()
    th.join(grace)
    return 0 if ok else 1


def main(port=None, mport=None, grace=None):
    sys.exit(serve(port, mport, grace))
