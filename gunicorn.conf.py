"""
Gunicorn configuration for the Registro Emocional API.

    gunicorn registro.main:app -c gunicorn.conf.py

Env vars that override defaults:
  PORT       TCP port to bind
  WORKERS    number of worker processes (default: 2)
  LOG_LEVEL  gunicorn log level (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Handlers are short synchronous upserts of one day's JSON; the DB is the bottleneck.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

# Devices flush their queue as a burst of POSTs, then probe /health every few seconds.
keepalive = 10

# No request touches more than one user's window of days.
timeout = 30

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 20
