import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
django_app = get_wsgi_application()


def application(environ, start_response):
    # Ping sin pasar por Django para el healthcheck del contenedor.
    if environ.get("PATH_INFO") == "/ping":
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [b"pong"]
    return django_app(environ, start_response)
