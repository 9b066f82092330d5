"""Bootstrap container wiring configuration into observability and stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from opentelemetry import trace

from record_store.infrastructure.config import Config, get_config
from record_store.infrastructure.logging import get_logger, setup_logging
from record_store.infrastructure.metrics import MetricsRegistry, get_metrics
from record_store.infrastructure.tracing import setup_tracing

if TYPE_CHECKING:
    from record_store.application import Store, TreeStore


@dataclass
class Container:
    """Configured logging, tracing and metrics, plus store factories."""

    config: Config
    logger: structlog.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry

    _instance: ClassVar[Container | None] = None

    @classmethod
    def create(
        cls,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> Container:
        """Create the container, configuring logging and tracing from ``config``."""
        if cls._instance is not None:
            return cls._instance

        config = config or get_config()
        observability = config.observability
        setup_logging(observability.log_level, observability.log_format)
        tracer = setup_tracing(observability.otel_service_name, observability.otel_endpoint)
        logger = get_logger("record_store")

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics or get_metrics(),
        )

        logger.info(
            "record_store_container_initialized",
            id_property=config.store.id_property,
            parent_property=config.store.parent_property,
        )

        return cls._instance

    @classmethod
    def get(cls) -> Container:
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def create_store(self, data: Any = None, **options: Any) -> Store[Any]:
        """Build a Store using the container's settings and metrics."""
        from record_store.application import Store

        options.setdefault("settings", self.config.store)
        options.setdefault("metrics", self.metrics)
        return Store(data, **options)

    def create_tree(self, data: Any = None, **options: Any) -> TreeStore[Any]:
        """Build a TreeStore over a new Store."""
        from record_store.application import TreeStore

        return TreeStore(self.create_store(data, **options), self.config.store.parent_property)


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
