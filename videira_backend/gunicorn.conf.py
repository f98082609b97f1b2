# Gunicorn configuration for the Videira Backend
# Run with: gunicorn -c gunicorn.conf.py "app:create_app()"

import os

# Server socket
port = os.environ.get('PORT', '5000')
bind = f"0.0.0.0:{port}"
backlog = 2048

# Worker processes
# Console caches and the job scheduler live in process memory, so a single
# worker process with threads serves every console
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '8'))
max_requests = 0

# Timeouts
timeout = 120
keepalive = 30
graceful_timeout = 60

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'videira-backend'

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info("Videira Backend server is ready. Listening on %s", server.address)


def worker_int(worker):
    worker.log.info("Worker received INT or QUIT signal")


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)
