"""
Gunicorn configuration for PitchFlow production deployment.

Usage:
    gunicorn pitchflow.main:app -c gunicorn.conf.py
"""

import multiprocessing
import os

bind = os.getenv("BIND", "0.0.0.0:8000")

# Analysis jobs run in-process after the response; keep the pool modest.
# Workers share cache versions and notices through the database.
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() + 1))

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Must exceed EXTRACTION_TIMEOUT plus document download
timeout = 120
graceful_timeout = 90

keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = "info"
