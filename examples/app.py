import os


def application(environ, start_response):
    """Minimal WSGI app that reports which worker served the request."""
    body = f"served by worker {os.getpid()}\n".encode()
    start_response("200 OK", [("Content-Type", "text/plain"), ("Content-Length", str(len(body)))])
    return [body]
