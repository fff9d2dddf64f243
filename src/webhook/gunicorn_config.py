"""Gunicorn configuration for the sitesync webhook receiver.

All logs go to stdout/stderr so they show up in `docker compose logs`.

A single worker process is required: per-key write serialization in the
content store uses in-process locks. Concurrent notifications are handled
by the worker's threads instead.
"""

import sys

# Bind to all interfaces on port 5000
bind = "0.0.0.0:5000"

workers = 1
worker_class = "gthread"
threads = 4
# Fetches retry with backoff, so allow more than one request timeout per file
timeout = 60
keepalive = 2

accesslog = "-"
errorlog = "-"
loglevel = "info"

# %(h)s remote IP, %(r)s request line, %(s)s status, %(b)s size, %(D)s time in us
access_log_format = (
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s '
    '"%(f)s" "%(a)s" %(D)s %(p)s'
)

capture_output = True
enable_stdio_inheritance = True


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Gunicorn for sitesync webhook receiver")


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Gunicorn server is ready to accept connections")


def worker_abort(worker):
    """Called when a worker receives a SIGABRT signal."""
    worker.log.error("Worker received SIGABRT signal - likely timeout")


preload_app = False
reload = False
daemon = False
pidfile = None

# Request limits
limit_request_line = 4096
limit_request_fields = 100
limit_request_field_size = 8190

logconfig_dict = {
    'version': 1,
    'disable_existing_loggers': False,
    'loggers': {
        'gunicorn.error': {
            'level': 'INFO',
            'handlers': ['error_console'],
            'propagate': False,
            'qualname': 'gunicorn.error'
        },
        'gunicorn.access': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False,
            'qualname': 'gunicorn.access'
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stdout
        },
        'error_console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stderr
        },
    },
    'formatters': {
        'generic': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
            'class': 'logging.Formatter'
        }
    }
}
