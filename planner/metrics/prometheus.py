from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, start_http_server

from planner.metrics.base import Labels, MetricsEngine


class PrometheusMetricsEngine(MetricsEngine):
    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self._registry = registry
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}

    def _get_counter(self, name: str, labels: Labels) -> Counter:
        if name not in self._counters:
            self._counters[name] = Counter(
                name, name, list(labels.keys()), registry=self._registry
            )
        return self._counters[name]

    def _get_histogram(self, name: str, labels: Labels) -> Histogram:
        if name not in self._histograms:
            self._histograms[name] = Histogram(
                name, name, list(labels.keys()), registry=self._registry
            )
        return self._histograms[name]

    def inc(self, name: str, labels: Labels, value: float = 1) -> None:
        self._get_counter(name, labels).labels(**labels).inc(value)

    def observe(self, name: str, labels: Labels, value: float) -> None:
        self._get_histogram(name, labels).labels(**labels).observe(value)

    def start_server(self, port: int) -> None:
        start_http_server(port, registry=self._registry)
