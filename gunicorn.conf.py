"""
Gunicorn Configuration for Production
Usage: gunicorn -c gunicorn.conf.py wsgi:app
"""

import multiprocessing
import os

# Server socket
# PORT is set by managed hosting platforms; 8080 otherwise
port = int(os.environ.get('PORT', 8080))
bind = f"0.0.0.0:{port}"
backlog = 2048

# Worker processes
# JSON file storage is per process: keep a single worker unless DATA_DIR is shared safely
workers = int(os.environ.get('WEB_CONCURRENCY', os.environ.get('GUNICORN_WORKERS', 1)))
threads = int(os.environ.get('GUNICORN_THREADS', min(4, multiprocessing.cpu_count())))
worker_class = 'gthread'
# AI calls wait on the model endpoint
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 90))
keepalive = 2

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = os.environ.get('LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'pitchside'

# Server mechanics
daemon = False
pidfile = os.environ.get('GUNICORN_PIDFILE', None)
umask = 0
tmp_upload_dir = None

# Performance
max_requests = 1000
max_requests_jitter = 50
preload_app = True

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    """Called just after the server is started"""
    server.log.info("Pitchside server is ready. Accepting connections.")


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    worker.log.info("Worker received ABRT signal")
