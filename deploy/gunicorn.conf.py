"""Gunicorn configuration for the lesson generation service.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

The service is I/O-bound: each lesson waits on text providers (15-60s)
and then on image providers, some of which queue jobs for minutes.
Generation runs in background tasks, so request latency stays low but
workers must stay alive long enough for runs to finish.
"""

import multiprocessing
import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:5000")
backlog = 2048

# ─── Worker processes ───────────────────────────────────────────
#
# One async worker per core.  With STORE_TYPE=memory each worker keeps its
# own lessons and traces; use STORE_TYPE=redis when running more than one.

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count(), 4)))
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# Stable Horde jobs poll for up to IMAGE_POLL_INTERVAL × IMAGE_POLL_MAX_ATTEMPTS
# (2 minutes by default) after a text stage of up to a minute.

timeout = 240
graceful_timeout = 180  # let in-flight background generations finish
keepalive = 30

# ─── Worker recycling ──────────────────────────────────────────

max_requests = 2000
max_requests_jitter = 300

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sμs'

# ─── Process naming ─────────────────────────────────────────────

proc_name = "lesson-forge"

# ─── Server hooks ───────────────────────────────────────────────


def on_starting(server):
    server.log.info(
        "Starting lesson service — workers=%d, timeout=%ds, bind=%s",
        workers,
        timeout,
        bind,
    )


def worker_exit(server, worker):
    server.log.info("Worker exit (pid: %s)", worker.pid)
