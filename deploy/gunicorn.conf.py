import multiprocessing
import os

wsgi_app = "tuition_desk.main:app"
bind = os.getenv("TUITION_DESK_BIND", "127.0.0.1:8000")
workers = int(os.getenv("TUITION_DESK_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
