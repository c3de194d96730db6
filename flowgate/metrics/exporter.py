"""This module contains functionality to start a prometheus exporter and expose metrics with it"""

from logging import getLogger

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

from flowgate.util.configuration import MetricsConfig

logger = getLogger("Exporter")


class PrometheusExporter:
    """Used to control the prometheus exporter and to manage the metrics"""

    @property
    def is_running(self) -> bool:
        """Returns whether the exporter is running"""
        return self.thread is not None and self.thread.is_alive()

    def __init__(self, configuration: MetricsConfig, registry: CollectorRegistry = REGISTRY):
        logger.debug("Initializing Prometheus Exporter")
        self.configuration = configuration
        self.registry = registry
        self.server = None
        self.thread = None

    def run(self) -> None:
        """Starts the default prometheus http endpoint in a daemon thread"""
        if self.is_running:
            return
        port = self.configuration.port
        self.server, self.thread = start_http_server(port, registry=self.registry)
        logger.info("Prometheus Exporter started on port %s", self.server.server_port)

    def shut_down(self) -> None:
        """Stops the http endpoint if it is running"""
        if self.server is None:
            return
        self.server.shutdown()
        self.server.server_close()
        if self.thread is not None:
            self.thread.join()
        self.server, self.thread = None, None
        logger.info("Prometheus Exporter stopped")
