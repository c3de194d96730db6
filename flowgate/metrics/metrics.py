"""
flowgate keeps prometheus metrics for every executor, e.g.
:code:`flowgate_number_of_started_jobs_total` or :code:`flowgate_processing_time_per_job_sum`.
Every metric carries the label :code:`executor` holding the name of the executor (or of the
stream or batch that owns it).

Configuration
=============

..  code-block:: yaml
    :linenos:

    metrics:
      enabled: true
      port: 8000

enabled
-------

Use :code:`true` or :code:`false` to activate or deactivate the metrics exporter. Defaults to
:code:`false`. Metrics are always collected, the flag only controls whether they are exposed.

port
----

Specifies the port which should be used for the prometheus exporter endpoint. Defaults to
:code:`8000`.

Metrics Overview
================

.. autoclass:: flowgate.framework.executor.BoundedExecutor.Metrics
   :members:
   :undoc-members:
"""

from abc import ABC, abstractmethod
from typing import Any, Union

from attrs import asdict, define, field, validators
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


@define(kw_only=True, slots=False)
class Metric(ABC):
    """Metric base class"""

    name: str = field(validator=validators.instance_of(str))
    description: str = field(validator=validators.instance_of(str))
    labels: dict = field(
        validator=[
            validators.instance_of(dict),
            validators.deep_mapping(
                key_validator=validators.instance_of(str),
                value_validator=validators.instance_of(str),
            ),
        ],
        factory=dict,
    )
    _registry: CollectorRegistry = field(default=REGISTRY)
    _prefix: str = field(default="flowgate_")
    inject_label_values: bool = field(default=True)
    tracker: Union[Counter, Histogram, Gauge] = field(init=False, default=None)

    @property
    def fullname(self):
        """returns the fullname"""
        return f"{self._prefix}{self.name}"

    def init_tracker(self) -> None:
        """initializes the tracker or reuses an already registered collector of the same name"""
        try:
            if isinstance(self, CounterMetric):
                self.tracker = Counter(
                    name=self.fullname,
                    documentation=self.description,
                    labelnames=self.labels.keys(),
                    registry=self._registry,
                )
            if isinstance(self, HistogramMetric):
                self.tracker = Histogram(
                    name=self.fullname,
                    documentation=self.description,
                    labelnames=self.labels.keys(),
                    buckets=(0.001, 0.01, 0.1, 0.5, 1, 5, 30),
                    registry=self._registry,
                )
            if isinstance(self, GaugeMetric):
                self.tracker = Gauge(
                    name=self.fullname,
                    documentation=self.description,
                    labelnames=self.labels.keys(),
                    registry=self._registry,
                )
        except ValueError as error:
            # pylint: disable=protected-access
            self.tracker = self._registry._names_to_collectors.get(self.fullname)
            # pylint: enable=protected-access
            if not isinstance(self.tracker, METRIC_TO_COLLECTOR_TYPE[type(self)]):
                raise ValueError(
                    f"Metric {self.fullname} already exists with different type"
                ) from error
        if self.inject_label_values:
            self.tracker.labels(**self.labels)

    @abstractmethod
    def __add__(self, other):
        """Add"""


@define(kw_only=True)
class CounterMetric(Metric):
    """Wrapper for prometheus Counter metric"""

    def __add__(self, other: Any) -> "CounterMetric":
        self.tracker.labels(**self.labels).inc(other)
        return self

    @property
    def value(self) -> float:
        """current value of the labelled counter"""
        return self.tracker.labels(**self.labels)._value.get()  # pylint: disable=protected-access


@define(kw_only=True)
class HistogramMetric(Metric):
    """Wrapper for prometheus Histogram metric"""

    def __add__(self, other):
        self.tracker.labels(**self.labels).observe(other)
        return self


@define(kw_only=True)
class GaugeMetric(Metric):
    """Wrapper for prometheus Gauge metric"""

    def __add__(self, other):
        self.tracker.labels(**self.labels).set(other)
        return self

    @property
    def value(self) -> float:
        """current value of the labelled gauge"""
        return self.tracker.labels(**self.labels)._value.get()  # pylint: disable=protected-access


@define(kw_only=True)
class Metrics:
    """Base class grouping the metrics of one component under common labels"""

    _labels: dict

    def __attrs_post_init__(self):
        for attribute in asdict(self, recurse=False):
            attribute = getattr(self, attribute)
            if isinstance(attribute, Metric):
                attribute.labels = self._labels
                attribute.init_tracker()


METRIC_TO_COLLECTOR_TYPE = {
    CounterMetric: Counter,
    HistogramMetric: Histogram,
    GaugeMetric: Gauge,
}
