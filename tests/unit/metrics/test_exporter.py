# pylint: disable=missing-docstring
# pylint: disable=protected-access
# pylint: disable=attribute-defined-outside-init
import logging
from unittest import mock
from urllib.request import urlopen

from prometheus_client import CollectorRegistry

from flowgate.metrics.exporter import PrometheusExporter
from flowgate.metrics.metrics import CounterMetric
from flowgate.util.configuration import MetricsConfig


class TestPrometheusExporter:
    def setup_method(self):
        self.registry = CollectorRegistry()
        self.metrics_config = MetricsConfig(enabled=True, port=0)

    def test_correct_setup(self):
        exporter = PrometheusExporter(self.metrics_config, registry=self.registry)
        assert exporter.configuration.port == 0
        assert exporter.registry is self.registry
        assert not exporter.is_running

    @mock.patch("flowgate.metrics.exporter.start_http_server")
    def test_run_starts_http_server(self, mock_http_server, caplog):
        config = MetricsConfig(enabled=True, port=8001)
        server, thread = mock.MagicMock(), mock.MagicMock()
        server.server_port = 8001
        mock_http_server.return_value = (server, thread)
        with caplog.at_level(logging.INFO):
            exporter = PrometheusExporter(config, registry=self.registry)
            exporter.run()
        mock_http_server.assert_called_once_with(8001, registry=self.registry)
        assert "Prometheus Exporter started on port 8001" in caplog.text

    @mock.patch("flowgate.metrics.exporter.start_http_server")
    def test_run_twice_starts_server_once(self, mock_http_server):
        server, thread = mock.MagicMock(), mock.MagicMock()
        thread.is_alive.return_value = True
        mock_http_server.return_value = (server, thread)
        exporter = PrometheusExporter(self.metrics_config, registry=self.registry)
        exporter.run()
        exporter.run()
        mock_http_server.assert_called_once()

    def test_shut_down_without_run_does_nothing(self):
        exporter = PrometheusExporter(self.metrics_config, registry=self.registry)
        exporter.shut_down()
        assert not exporter.is_running

    def test_exposes_metrics_over_http(self):
        metric = CounterMetric(
            name="number_of_exposed_things",
            description="exposed things",
            labels={"executor": "exporter-test"},
            registry=self.registry,
        )
        metric.init_tracker()
        metric += 4
        exporter = PrometheusExporter(self.metrics_config, registry=self.registry)
        exporter.run()
        try:
            assert exporter.is_running
            port = exporter.server.server_port
            with urlopen(f"http://127.0.0.1:{port}/metrics", timeout=5) as response:
                body = response.read().decode("utf-8")
            assert 'flowgate_number_of_exposed_things_total{executor="exporter-test"} 4.0' in body
        finally:
            exporter.shut_down()
        assert not exporter.is_running
