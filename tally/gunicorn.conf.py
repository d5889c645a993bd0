import multiprocessing
import os

bind = os.environ.get(
    "GUNICORN_BIND", f"{os.environ.get('HOST', '0.0.0.0')}:{os.environ.get('PORT', '80')}"
)
workers = int(
    os.environ.get("GUNICORN_WORKERS", str(multiprocessing.cpu_count() * 2 + 1))
)
threads = int(os.environ.get("GUNICORN_THREADS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "15"))
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "gthread")
wsgi_app = "tally.wsgi:app"
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")


def worker_exit(server, worker):
    """Drain queued aggregations before a worker process goes away."""
    from tally.wsgi import app

    app.extensions["aggregation_worker"].shutdown(wait=True)
