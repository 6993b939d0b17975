"""Factory classes for creating configured service instances."""

from typing import Optional

from .logging_config import setup_logger
from .models import OptimizerConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import AssetRendererProtocol, FileStoreProtocol, LoggerProtocol
from .services import (
    DEFAULT_RESULT_HISTORY,
    ImageOptimizationService,
    OptimizationOrchestrator,
    RenderThrottle,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "sane-image-size", level: Optional[str] = None) -> LoggerProtocol:
        """Create a structured logger on top of the configured stdlib logger."""
        return StructuredLogger(setup_logger(name, level=level))


class OptimizerFactory:
    """Factory for creating the complete optimization pipeline."""

    @staticmethod
    def create_orchestrator(
        renderer: AssetRendererProtocol,
        store: FileStoreProtocol,
        logger: Optional[LoggerProtocol] = None,
        config: Optional[OptimizerConfig] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        result_history: Optional[int] = DEFAULT_RESULT_HISTORY,
    ) -> OptimizationOrchestrator:
        """Create a fully wired orchestrator.

        ``config`` defaults to ``OptimizerConfig.from_env()``.
        """
        if config is None:
            config = OptimizerConfig.from_env()

        if logger is None:
            logger = LoggerFactory.create_logger("sane-image-size")

        service = ImageOptimizationService(
            renderer=renderer,
            store=store,
            logger=logger,
            config=config,
            metrics_collector=metrics_collector,
            throttle=RenderThrottle(config.render_interval),
        )
        return OptimizationOrchestrator(
            service=service, logger=logger, result_history=result_history
        )
