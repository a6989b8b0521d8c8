import multiprocessing
import os

wsgi_app = "condotrack:create_app()"
# Sensible defaults for a small dyno/container; tune as needed
workers = int(os.environ.get("WEB_CONCURRENCY", (multiprocessing.cpu_count() * 2) + 1))
threads = 2
worker_class = "gthread"
# create_app() runs db.create_all(); do it once before forking
preload_app = True
bind = f":{os.environ.get('PORT', '8000')}"
# Heroku/Render style proxy headers
forwarded_allow_ips = "*"
timeout = 30
keepalive = 75
# Access and error logs to stdout, same level as the app loggers
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
