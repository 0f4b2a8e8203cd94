"""Gunicorn configuration for production."""
import os

# Server socket
port = os.getenv("PORT", "8000")
bind = f"0.0.0.0:{port}"
backlog = 2048

wsgi_app = "travel_checkout:create_app()"

# Live checkout sessions and their timers are process-local, so a single
# worker process serves all requests; concurrency comes from threads.
workers = 1
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", "8"))
timeout = 120
keepalive = 5
graceful_timeout = 30

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
capture_output = True

proc_name = "travel-checkout"

# Server mechanics
daemon = False
pidfile = None
umask = 0
tmp_upload_dir = None
