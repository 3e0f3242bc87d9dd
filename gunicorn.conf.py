import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"
# The background scheduler starts once per worker process. Keep a single
# worker, or set ENABLE_SCHEDULER=false on every process but one.
workers = int(os.getenv('WEB_CONCURRENCY', 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 100
# Manual cron triggers can run as long as a full tick
timeout = int(os.getenv('GUNICORN_TIMEOUT', 660))
preload_app = False
