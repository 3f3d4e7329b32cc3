from planner.metrics.base import Labels, MetricsEngine
from planner.metrics.noop import NoopMetricsEngine
from planner.metrics.prometheus import PrometheusMetricsEngine

__all__ = ["MetricsEngine", "Labels", "NoopMetricsEngine", "PrometheusMetricsEngine"]
