# gunicorn -c gunicorn_config.py "app:create_app()"
# Hosts like Render pass the port in PORT; read it here since $PORT is not always expanded in the start command
import os

bind = "0.0.0.0:%s" % os.environ.get("PORT", "10000")
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = 60
worker_tmp_dir = "/dev/shm"
