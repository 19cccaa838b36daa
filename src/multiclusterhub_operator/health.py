"""Health check endpoints for the operator."""

from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.wrappers import Response


def create_combined_wsgi_app(ready_check: Callable[[], bool] = lambda: True) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        ready_check: Returns True once the operator can process requests

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        """WSGI app that routes /healthz and /readyz, delegates /metrics to prometheus."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        elif path == "/readyz":
            if ready_check():
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            else:
                response = Response('{"status":"not ready"}', mimetype="application/json", status=503)
            return response(environ, start_response)
        else:
            # Delegate all other paths (including /metrics) to prometheus app
            return metrics_app(environ, start_response)

    return combined_app
