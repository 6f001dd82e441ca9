"""
Gunicorn Configuration für Mailgate
Production WSGI Server Setup

Usage:
    gunicorn -c config/gunicorn.conf.py "mailgate.app_factory:create_app()"
"""

import multiprocessing
import os

# Server Socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:5000")
backlog = 2048

# Worker Processes
# Jede Mail-Operation blockiert einen Worker bis zu connect+auth Timeout (2x15s)
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
max_requests = 1000
max_requests_jitter = 50
timeout = 60  # > MAIL_CONNECT_TIMEOUT + MAIL_AUTH_TIMEOUT
keepalive = 2

# Logging
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "logs/gunicorn_access.log")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "logs/gunicorn_error.log")
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(L)ss "%(a)s"'

# Process Naming
proc_name = "mailgate"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

raw_env = [
    "FLASK_ENV=production",
]


def on_starting(server):
    """Called just before the master process is initialized."""
    os.makedirs("logs", exist_ok=True)
    print("🚀 Starting Gunicorn server...")


def when_ready(server):
    """Called just after the server is started."""
    print(f"✅ Gunicorn ready with {workers} workers on {bind}")


def on_exit(server):
    """Called just before exiting Gunicorn."""
    print("👋 Shutting down Gunicorn...")
