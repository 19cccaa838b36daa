"""Tests for base handler functionality."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from multiclusterhub_operator.constants import API_GROUP_VERSION, FINALIZER, KIND_HUB
from multiclusterhub_operator.handlers.base import BaseHandler
from multiclusterhub_operator.result import ReconcileResult
from multiclusterhub_operator.utils.errors import ConfigurationError

from .conftest import HUB_NAME, HUB_NAMESPACE, make_hub


def hub_with_finalizers(finalizers):
    hub = make_hub()
    hub["metadata"]["finalizers"] = finalizers
    return hub


class TestBaseHandler:
    """Test cases for BaseHandler class."""

    def test_init(self):
        """Test handler initialization."""
        client = Mock()
        handler = BaseHandler(kind=KIND_HUB, client=client)
        assert handler.kind == KIND_HUB
        assert handler.client is client
        assert handler.logger is not None

    def test_ensure_finalizer_adds_when_missing(self):
        """Test that the finalizer is patched onto the hub."""
        client = Mock()
        client.patch.return_value = {"metadata": {"resourceVersion": "42"}}
        handler = BaseHandler(kind=KIND_HUB, client=client)
        hub = make_hub()

        assert handler.ensure_finalizer(hub)

        client.patch.assert_called_once_with(
            API_GROUP_VERSION,
            KIND_HUB,
            HUB_NAME,
            HUB_NAMESPACE,
            {"metadata": {"finalizers": [FINALIZER]}},
        )
        assert hub["metadata"]["finalizers"] == [FINALIZER]
        assert hub["metadata"]["resourceVersion"] == "42"

    def test_ensure_finalizer_no_duplicate(self):
        """Test that no write happens when the finalizer is present."""
        client = Mock()
        handler = BaseHandler(kind=KIND_HUB, client=client)
        hub = hub_with_finalizers([FINALIZER, "other-finalizer"])

        assert not handler.ensure_finalizer(hub)

        client.patch.assert_not_called()

    def test_remove_finalizer_keeps_others(self):
        """Test that only our finalizer is removed."""
        client = Mock()
        handler = BaseHandler(kind=KIND_HUB, client=client)
        hub = hub_with_finalizers([FINALIZER, "other-finalizer"])

        assert handler.remove_finalizer(hub)

        patch_body = client.patch.call_args[0][4]
        assert patch_body == {"metadata": {"finalizers": ["other-finalizer"]}}
        assert hub["metadata"]["finalizers"] == ["other-finalizer"]

    def test_remove_finalizer_sets_none_when_empty(self):
        """Test that finalizers is set to None when the last finalizer is removed."""
        client = Mock()
        handler = BaseHandler(kind=KIND_HUB, client=client)
        hub = hub_with_finalizers([FINALIZER])

        handler.remove_finalizer(hub)

        assert client.patch.call_args[0][4] == {"metadata": {"finalizers": None}}

    def test_remove_finalizer_absent(self):
        """Test that removing an absent finalizer makes no write."""
        client = Mock()
        handler = BaseHandler(kind=KIND_HUB, client=client)

        assert not handler.remove_finalizer(hub_with_finalizers(["other-finalizer"]))
        client.patch.assert_not_called()

    @patch("multiclusterhub_operator.handlers.base.emit_reconcile_started")
    @patch("multiclusterhub_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_success(self, mock_metrics, mock_emit_started):
        """Test successful reconciliation with metrics."""
        handler = BaseHandler(kind=KIND_HUB, client=Mock())
        hub = make_hub()
        reconcile_fn = Mock(return_value=ReconcileResult.after(20, "waiting"))

        result = handler.reconcile_with_metrics(hub, reconcile_fn)

        reconcile_fn.assert_called_once()
        assert result.requeue_after == 20
        mock_emit_started.assert_called_once_with(hub)
        mock_metrics.reconcile_total.labels.assert_any_call(result="started")
        mock_metrics.reconcile_total.labels.assert_any_call(result="success")
        assert mock_metrics.reconcile_duration_seconds.observe.called

    @patch("multiclusterhub_operator.handlers.base.emit_reconcile_failed")
    @patch("multiclusterhub_operator.handlers.base.emit_reconcile_started")
    @patch("multiclusterhub_operator.handlers.base.metrics")
    @patch("multiclusterhub_operator.handlers.base.sanitize_exception")
    def test_reconcile_with_metrics_failure(
        self, mock_sanitize, mock_metrics, mock_emit_started, mock_emit_failed
    ):
        """Test failed reconciliation with metrics and error handling."""
        handler = BaseHandler(kind=KIND_HUB, client=Mock())
        hub = make_hub()
        test_error = ConfigurationError("templates missing", "ResourceRenderError")
        mock_sanitize.return_value = "Sanitized error"

        def failing_fn():
            raise test_error

        with pytest.raises(ConfigurationError):
            handler.reconcile_with_metrics(hub, failing_fn)

        # once for the log record, once for the event
        assert mock_sanitize.call_count == 2
        mock_sanitize.assert_any_call(test_error)

        mock_emit_started.assert_called_once_with(hub)
        mock_emit_failed.assert_called_once_with(hub, "Reconciliation failed: Sanitized error")

        mock_metrics.error_total.labels.assert_called_with(error_type="ConfigurationError")
        mock_metrics.reconcile_total.labels.assert_any_call(result="error")
        assert mock_metrics.reconcile_duration_seconds.observe.called
