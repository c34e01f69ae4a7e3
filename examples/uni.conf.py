# Sample gunicorn configuration for an instance managed by uni.
#
# Copy to ~/.uni/conf/<name>.conf.py and run "uni <name>" to start it,
# "uni <name>" again for a rolling restart, or "uni <name> down" to stop it.
#
# uni requires chdir, preload_app, workers, bind and pidfile to be set
# explicitly in this file, even when the value matches gunicorn's default.
import os

# The WSGI application to serve, relative to chdir.
wsgi_app = "app:application"

# One worker per core is a good start; uni waits until this many new
# workers exist before moving traffic over.
workers = 4

# uni changes to this directory before exec'ing gunicorn, and activates
# <chdir>/.venv when present so gunicorn comes from the project.
chdir = os.path.expanduser("~/path/to/project")

# uni connects here to confirm new workers accept traffic. Only the last
# entry is probed when several are listed.
bind = ["127.0.0.1:3000"]

# Supplied by uni; do not change.
pidfile = os.environ["PIDFILE"]

# With preload_app = True, code changes need a full restart (new master).
# Without it, a quick in-place reload (HUP) picks up new code.
preload_app = False

# Generous timeout for interactive debugging in development.
timeout = 300 if os.environ.get("UNI_HOOK_PATH") else 30

accesslog = "-"
errorlog = "-"
