"""Service implementations for the upload optimization pipeline."""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from .exceptions import ConfigurationError
from .models import (
    FilePayload,
    OptimizationOutcome,
    OptimizationResult,
    OptimizerConfig,
    QueueItem,
    UploadEvent,
)
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .planning import (
    AVIF_MEDIA_TYPE,
    get_transformation,
    get_watermark_transformation,
    replace_extension,
)
from .protocols import AssetRendererProtocol, FileStoreProtocol, LoggerProtocol


class RenderThrottle:
    """Enforces a minimum interval between consecutive renderer calls.

    An interval of 0 disables throttling.
    """

    def __init__(self, interval: float = 0.0):
        self._interval = interval
        self._lock = asyncio.Lock()
        self._last_call: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    async def wait(self) -> None:
        if self._interval <= 0:
            return

        async with self._lock:
            loop = asyncio.get_running_loop()
            if self._last_call is not None:
                delay = self._last_call + self._interval - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
            self._last_call = loop.time()


class UploadQueue:
    """FIFO queue drained by at most one task at a time.

    ``submit`` must be called from inside a running event loop. An item
    leaves the queue only after its processing attempt has finished, and a
    failing item never stops the drain loop.
    """

    def __init__(
        self,
        processor: Callable[[QueueItem], Awaitable[Any]],
        logger: LoggerProtocol,
    ):
        self._processor = processor
        self._logger = logger
        self._items: Deque[QueueItem] = deque()
        self._draining = False
        self._active: Optional[str] = None
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def pending(self) -> int:
        """Number of items not yet fully processed, including the active one."""
        return len(self._items)

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def active(self) -> Optional[str]:
        """File key of the item currently being processed."""
        return self._active

    def submit(self, item: QueueItem) -> None:
        loop = asyncio.get_running_loop()
        self._items.append(item)
        self._logger.debug(f"Queued file {item.file_key} ({len(self._items)} pending)")

        if not self._draining:
            self._draining = True
            self._task = loop.create_task(self._drain())

    async def join(self) -> None:
        """Wait until every submitted item has been attempted."""
        while self._draining and self._task is not None:
            await self._task

    async def _drain(self) -> None:
        try:
            while self._items:
                item = self._items[0]
                self._active = item.file_key
                try:
                    await self._processor(item)
                except Exception as exc:  # noqa: BLE001
                    self._logger.error(
                        f"Error processing file {item.file_key}: {exc}", exc_info=True
                    )
                finally:
                    self._active = None
                    self._items.popleft()
        finally:
            self._draining = False


class ImageOptimizationService:
    """Runs the per-file optimization pipeline for one queued upload."""

    def __init__(
        self,
        renderer: AssetRendererProtocol,
        store: FileStoreProtocol,
        logger: LoggerProtocol,
        config: Optional[OptimizerConfig] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        throttle: Optional[RenderThrottle] = None,
    ):
        self._renderer = renderer
        self._store = store
        self._logger = logger
        self._config = config or OptimizerConfig()
        self._metrics_collector = metrics_collector
        self._throttle = throttle or RenderThrottle(self._config.render_interval)

    @property
    def config(self) -> OptimizerConfig:
        return self._config

    async def optimize(self, item: QueueItem) -> OptimizationResult:
        """
        Convert one upload to a watermarked AVIF and store it in place.

        Args:
            item: The queued upload

        Returns:
            The outcome for this upload

        Raises:
            Exception: Whatever the renderer or the store raised
        """
        start_time = time.time()
        payload = item.payload
        log_context = LogContext(
            correlation_id=f"file_{item.file_key}_{int(start_time * 1000)}",
            operation="optimize",
            component="image_optimization_service",
        ).with_metadata(file_key=item.file_key, type=payload.type)

        result = OptimizationResult(
            file_key=item.file_key,
            outcome=OptimizationOutcome.FAILED,
            original_size=payload.filesize,
        )

        try:
            plan = get_transformation(
                payload.type, self._config.quality, self._config.max_size
            )
            if plan is None:
                self._logger.debug("Skipping ineligible file", log_context)
                result.outcome = OptimizationOutcome.SKIPPED_INELIGIBLE
                return result

            self._logger.debug("Rendering AVIF", log_context.with_operation("render_base"))
            await self._throttle.wait()
            base = await self._renderer.render(item.file_key, plan)
            result.new_size = base.byte_size

            if not base.byte_size < payload.filesize:
                base.stream.close()
                self._logger.info(
                    f"AVIF conversion for {item.file_key} skipped: new file size not smaller",
                    log_context,
                    original_size=payload.filesize,
                    new_size=base.byte_size,
                )
                result.outcome = OptimizationOutcome.SKIPPED_NOT_SMALLER
                return result

            try:
                watermark_plan = get_watermark_transformation(
                    base.width,
                    base.height,
                    watermark_path=self._config.watermark_path,
                    percentage=self._config.watermark_percentage,
                    minimum_width=self._config.watermark_min_width,
                    quality=self._config.quality,
                    pad_canvas=self._config.pad_canvas,
                )
                self._logger.debug(
                    "Applying watermark",
                    log_context.with_operation("render_watermark"),
                    overlay_width=watermark_plan.overlay_width,
                )
                await self._throttle.wait()
            except Exception:
                # the base stream is only handed over by the render call
                base.stream.close()
                raise

            final = await self._renderer.render(item.file_key, watermark_plan, base.stream)

            updated = payload.model_copy(deep=True)
            updated.width = final.width
            updated.height = final.height
            updated.filesize = final.byte_size
            updated.type = AVIF_MEDIA_TYPE
            updated.filename_download = replace_extension(payload.filename_download)
            updated.optimized = True

            self._logger.debug("Storing optimized file", log_context.with_operation("store"))
            await self._store.store(
                final.stream,
                updated,
                item.file_key,
                suppress_notification=self._config.suppress_notifications,
            )
            _apply_payload(payload, updated)

            result.new_size = final.byte_size
            result.outcome = OptimizationOutcome.OPTIMIZED
            self._logger.info(
                f"File {item.file_key} successfully converted to AVIF with fitted watermark",
                log_context,
                original_size=result.original_size,
                new_size=result.new_size,
            )
            return result

        except Exception as exc:
            result.error = str(exc)
            raise

        finally:
            result.processing_time = time.time() - start_time
            self._record(result, start_time)

    async def watermark_size(self) -> Dict[str, int]:
        """Read the watermark's own dimensions from the renderer.

        Raises:
            ConfigurationError: If the watermark cannot be read
        """
        try:
            return await self._renderer.get_metadata(self._config.watermark_path)
        except Exception as exc:
            raise ConfigurationError(
                f"Watermark {self._config.watermark_path} is not readable: {exc}"
            ) from exc

    def _record(self, result: OptimizationResult, start_time: float) -> None:
        if self._metrics_collector is None:
            return
        self._metrics_collector.record_metric(
            PerformanceMetrics(
                operation="optimize",
                start_time=start_time,
                end_time=start_time + result.processing_time,
                success=result.outcome != OptimizationOutcome.FAILED,
                error_message=result.error or None,
                metadata={"file_key": result.file_key, "outcome": result.outcome.value},
            )
        )


def _apply_payload(payload: FilePayload, updated: FilePayload) -> None:
    for name, value in updated.model_dump().items():
        setattr(payload, name, value)


DEFAULT_RESULT_HISTORY = 1000


class OptimizationOrchestrator:
    """Entry point for upload notifications.

    ``results`` holds the outcomes of the most recent ``result_history``
    uploads, oldest first; ``None`` keeps every outcome.
    """

    def __init__(
        self,
        service: ImageOptimizationService,
        logger: LoggerProtocol,
        result_history: Optional[int] = DEFAULT_RESULT_HISTORY,
    ):
        self._service = service
        self._logger = logger
        self._queue = UploadQueue(self._process, logger)
        self.results: Deque[OptimizationResult] = deque(maxlen=result_history)

    @property
    def queue(self) -> UploadQueue:
        return self._queue

    @property
    def service(self) -> ImageOptimizationService:
        return self._service

    def handle_upload(self, event: UploadEvent) -> bool:
        """
        React to a "file uploaded" notification.

        Already-optimized files are ignored before anything is queued, which
        is what stops the re-store from being processed again.

        Returns:
            True if the upload was queued
        """
        if event.payload.optimized is True:
            self._logger.debug(f"Ignoring already optimized file {event.file_key}")
            return False

        self._queue.submit(QueueItem.from_event(event))
        return True

    async def join(self) -> None:
        await self._queue.join()

    async def _process(self, item: QueueItem) -> None:
        try:
            result = await self._service.optimize(item)
        except Exception as exc:
            self.results.append(
                OptimizationResult(
                    file_key=item.file_key,
                    outcome=OptimizationOutcome.FAILED,
                    original_size=item.payload.filesize,
                    error=str(exc),
                )
            )
            raise
        self.results.append(result)
