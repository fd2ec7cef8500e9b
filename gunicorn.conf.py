"""
Gunicorn configuration for the DocSense API
"""
import multiprocessing
import os

# Server socket
bind = os.getenv("DOCSENSE_BIND", "127.0.0.1:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("DOCSENSE_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("DOCSENSE_LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "docsense-api"

# Server mechanics
daemon = False
capture_output = True
enable_stdio_inheritance = True

# Schema creation and seeding run once per worker on startup
preload_app = False

# Graceful timeout
graceful_timeout = 30
