"""Infrastructure layer - cross-cutting concerns."""

from record_store.infrastructure.config import (
    Config,
    ObservabilityConfig,
    StoreSettings,
    get_config,
)
from record_store.infrastructure.logging import setup_logging, get_logger
from record_store.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from record_store.infrastructure.tracing import setup_tracing, get_tracer, trace_span
from record_store.infrastructure.container import Container, get_container

__all__ = [
    "Config",
    "ObservabilityConfig",
    "StoreSettings",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "Container",
    "get_container",
]
