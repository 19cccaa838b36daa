"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from multiclusterhub_operator.health import create_combined_wsgi_app


def make_environ(path):
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


class TestCombinedWsgiApp:
    """Test cases for create_combined_wsgi_app."""

    def test_healthz_endpoint(self):
        """Test /healthz endpoint."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        result = app(make_environ("/healthz"), start_response)

        assert b'"status":"ok"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_readyz_endpoint_ready(self):
        """Test /readyz endpoint once workers run."""
        app = create_combined_wsgi_app(lambda: True)
        start_response = MagicMock()

        result = app(make_environ("/readyz"), start_response)

        assert b'"status":"ready"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_readyz_endpoint_not_ready(self):
        """Test /readyz endpoint before workers run."""
        app = create_combined_wsgi_app(lambda: False)
        start_response = MagicMock()

        result = app(make_environ("/readyz"), start_response)

        assert b'"status":"not ready"' in b"".join(result)
        assert "503" in start_response.call_args[0][0]

    def test_healthz_ignores_readiness(self):
        """Test that liveness does not depend on the ready check."""
        ready_check = MagicMock(return_value=False)
        app = create_combined_wsgi_app(ready_check)

        app(make_environ("/healthz"), MagicMock())

        ready_check.assert_not_called()

    @patch("multiclusterhub_operator.health.make_wsgi_app")
    def test_metrics_delegation(self, mock_make_wsgi_app):
        """Test that other paths are delegated to the metrics app."""
        mock_metrics_app = MagicMock(return_value=[b"metrics"])
        mock_make_wsgi_app.return_value = mock_metrics_app
        app = create_combined_wsgi_app()
        environ = make_environ("/metrics")
        start_response = MagicMock()

        result = app(environ, start_response)

        mock_metrics_app.assert_called_once_with(environ, start_response)
        assert result == [b"metrics"]
