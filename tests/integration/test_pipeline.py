"""Integration tests for the complete pipeline."""

import asyncio

import pytest

from sane_image_size.core.factories import OptimizerFactory
from sane_image_size.core.models import (
    OptimizationOutcome,
    OptimizerConfig,
    TransformationPlan,
    WatermarkPlan,
)
from sane_image_size.core.observability import MetricsCollector
from sane_image_size.testing.fakes import (
    FakeAssetRenderer,
    FakeFileStore,
    FakeLogger,
    create_upload_event,
)


def _run_uploads(events, renderer, store, config=None, metrics=None, feed_back=True):
    async def run():
        orchestrator = OptimizerFactory.create_orchestrator(
            renderer,
            store,
            logger=FakeLogger(),
            config=config or OptimizerConfig(),
            metrics_collector=metrics,
        )
        if feed_back:
            store.on_upload = orchestrator.handle_upload
        queued = [orchestrator.handle_upload(event) for event in events]
        await orchestrator.join()
        return orchestrator, queued

    return asyncio.run(run())


class TestPipelineIntegration:
    """Integration tests for the complete optimization pipeline."""

    def test_large_jpeg_end_to_end(self):
        """A 3000x2000 JPEG of 5MB becomes a watermarked 1920x1280 AVIF."""
        renderer = FakeAssetRenderer(base_byte_size=900_000)
        store = FakeFileStore()
        event = create_upload_event(
            file_key="photo-1", filesize=5_000_000, width=3000, height=2000
        )

        orchestrator, queued = _run_uploads([event], renderer, store)

        assert queued == [True]
        base_plan = renderer.plans(TransformationPlan)[0]
        assert base_plan.quality == 75
        assert (base_plan.max_width, base_plan.max_height) == (1920, 1920)

        watermark_plan = renderer.plans(WatermarkPlan)[0]
        assert watermark_plan.overlay_width == 384
        assert watermark_plan.gravity == "center"

        stored = store.stored[0]
        assert stored.payload.type == "image/avif"
        assert stored.payload.filename_download == "photo.avif"
        assert stored.payload.optimized is True
        assert (stored.payload.width, stored.payload.height) == (1920, 1280)
        assert event.payload.optimized is True
        assert orchestrator.results[0].outcome == OptimizationOutcome.OPTIMIZED

    def test_large_jpeg_not_smaller_is_left_alone(self):
        renderer = FakeAssetRenderer(base_byte_size=5_000_000)
        store = FakeFileStore()
        event = create_upload_event(filesize=5_000_000)
        original = event.payload.model_dump()

        orchestrator, _ = _run_uploads([event], renderer, store)

        assert store.stored == []
        assert renderer.plans(WatermarkPlan) == []
        assert event.payload.model_dump() == original
        assert orchestrator.results[0].outcome == OptimizationOutcome.SKIPPED_NOT_SMALLER

    def test_many_uploads_processed_once_in_order(self):
        renderer = FakeAssetRenderer()
        renderer.set_delay(0.005)
        store = FakeFileStore()
        events = [create_upload_event(file_key=f"file-{i}") for i in range(8)]

        orchestrator, queued = _run_uploads(events, renderer, store)

        assert all(queued)
        assert renderer.max_active == 1
        assert [r.file_key for r in orchestrator.results] == [f"file-{i}" for i in range(8)]
        assert [s.file_key for s in store.stored] == [f"file-{i}" for i in range(8)]
        base_keys = [c.file_key for c in renderer.calls if isinstance(c.plan, TransformationPlan)]
        assert base_keys == [f"file-{i}" for i in range(8)]

    @pytest.mark.parametrize("suppress", [True, False])
    def test_restore_never_triggers_reprocessing(self, suppress):
        renderer = FakeAssetRenderer()
        store = FakeFileStore()
        config = OptimizerConfig(suppress_notifications=suppress)

        orchestrator, _ = _run_uploads(
            [create_upload_event(file_key="k1")], renderer, store, config=config
        )

        assert len(store.notifications) == (0 if suppress else 1)
        assert len(store.stored) == 1
        assert len(renderer.plans(TransformationPlan)) == 1
        assert len(orchestrator.results) == 1

    def test_mixed_batch(self):
        renderer = FakeAssetRenderer(base_byte_size=1000)
        renderer.fail_keys = {"broken"}
        store = FakeFileStore()
        metrics = MetricsCollector()
        events = [
            create_upload_event(file_key="gif", media_type="image/gif"),
            create_upload_event(file_key="done", optimized=True),
            create_upload_event(file_key="tiny", filesize=500),
            create_upload_event(file_key="broken"),
            create_upload_event(file_key="png", media_type="image/png", filename="a.png"),
        ]

        orchestrator, queued = _run_uploads(events, renderer, store, metrics=metrics)

        assert queued == [True, False, True, True, True]
        outcomes = [(r.file_key, r.outcome) for r in orchestrator.results]
        assert outcomes == [
            ("gif", OptimizationOutcome.SKIPPED_INELIGIBLE),
            ("tiny", OptimizationOutcome.SKIPPED_NOT_SMALLER),
            ("broken", OptimizationOutcome.FAILED),
            ("png", OptimizationOutcome.OPTIMIZED),
        ]
        assert [s.file_key for s in store.stored] == ["png"]
        assert store.stored[0].payload.filename_download == "a.avif"
        assert metrics.get_summary()["failed_operations"] == 1

    def test_render_interval_spaces_renderer_calls(self):
        renderer = FakeAssetRenderer()
        store = FakeFileStore()
        config = OptimizerConfig(render_interval=0.03)

        _run_uploads([create_upload_event()], renderer, store, config=config)

        assert len(renderer.call_times) == 2
        assert renderer.call_times[1] - renderer.call_times[0] >= 0.025
