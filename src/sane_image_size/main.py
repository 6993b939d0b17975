"""Main module for the sane-image-size CLI."""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import aioboto3

from . import __version__
from .adapters import PillowAssetRenderer, S3FileStore
from .core import (
    ConfigurationError,
    OptimizationOutcome,
    OptimizationResult,
    OptimizerConfig,
    get_transformation,
    get_watermark_transformation,
)
from .core.factories import LoggerFactory, OptimizerFactory


def positive_int(value: str) -> int:
    """argparse type for dimensions that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def build_config(args: argparse.Namespace) -> OptimizerConfig:
    """Environment config with command-line overrides applied."""
    overrides: Dict[str, Any] = {}
    for name in ("max_size", "quality", "watermark_path", "render_interval"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    return OptimizerConfig.from_env(**overrides)


async def optimize_keys(
    bucket: str,
    keys: List[str],
    config: OptimizerConfig,
    endpoint_url: Optional[str] = None,
    log_level: Optional[str] = None,
) -> List[OptimizationResult]:
    """
    Run already-uploaded S3 objects through the optimization pipeline.

    Each object is announced as an upload; re-stores are announced again so
    the already-optimized guard is exercised exactly as on the host.

    Args:
        bucket: Bucket holding the uploads
        keys: Object keys to optimize
        config: Optimizer configuration
        endpoint_url: Optional S3 endpoint (e.g. a local MinIO)
        log_level: Log level override

    Returns:
        One result per processed upload, in processing order
    """
    logger = LoggerFactory.create_logger("sane-image-size", level=log_level)
    session = aioboto3.Session()
    async with session.client("s3", endpoint_url=endpoint_url) as s3_client:  # type: ignore[reportGeneralTypeIssues]
        store = S3FileStore(s3_client, bucket)
        renderer = PillowAssetRenderer(store)
        orchestrator = OptimizerFactory.create_orchestrator(
            renderer, store, logger=logger, config=config, result_history=len(keys)
        )
        store.set_listener(orchestrator.handle_upload)

        watermark = await orchestrator.service.watermark_size()
        logger.debug(
            f"Using watermark {config.watermark_path} "
            f"({watermark['width']}x{watermark['height']})"
        )

        for key in keys:
            event = await store.load_event(key)
            orchestrator.handle_upload(event)

        await orchestrator.join()
        return list(orchestrator.results)


def describe_plans(media_type: str, width: int, height: int, config: OptimizerConfig) -> Dict[str, Any]:
    """Show what would be done to an upload of the given type and size."""
    if width < 1 or height < 1:
        raise ValueError(f"Invalid source size {width}x{height}")
    plan = get_transformation(media_type, config.quality, config.max_size)
    if plan is None:
        return {"type": media_type, "eligible": False}

    scale = min(1.0, config.max_size / width, config.max_size / height)
    base_width = max(1, round(width * scale))
    base_height = max(1, round(height * scale))
    watermark_plan = get_watermark_transformation(
        base_width,
        base_height,
        watermark_path=config.watermark_path,
        percentage=config.watermark_percentage,
        minimum_width=config.watermark_min_width,
        quality=config.quality,
        pad_canvas=config.pad_canvas,
    )
    return {
        "type": media_type,
        "eligible": True,
        "transformation": plan.model_dump(mode="json"),
        "base_size": [base_width, base_height],
        "watermark": watermark_plan.model_dump(mode="json"),
    }


def main() -> None:
    """
    Entry point for the sane-image-size command-line interface.

    Commands are "optimize" (run stored uploads through the pipeline),
    "plan" (print the render plans for a media type and size) and
    "version".
    """
    parser = argparse.ArgumentParser(
        prog="sane-image-size",
        description="Re-encode uploaded images into smaller, watermarked AVIF files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Optimize two uploads in place
  sane-image-size optimize --bucket uploads 1f2e.jpg 9a8b.png

  # Show the plans for a 3000x2000 JPEG
  sane-image-size plan --type image/jpeg --width 3000 --height 2000
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    optimize_parser = subparsers.add_parser(
        "optimize", help="Optimize uploads already stored in S3"
    )
    optimize_parser.add_argument("--bucket", required=True, help="S3 bucket")
    optimize_parser.add_argument("--endpoint-url", default=None, help="S3 endpoint URL")
    optimize_parser.add_argument("keys", nargs="+", help="Object keys to optimize")
    optimize_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    plan_parser = subparsers.add_parser("plan", help="Print render plans")
    plan_parser.add_argument("--type", required=True, dest="media_type", help="Media type")
    plan_parser.add_argument("--width", type=positive_int, default=1920, help="Source width")
    plan_parser.add_argument("--height", type=positive_int, default=1080, help="Source height")

    for sub in (optimize_parser, plan_parser):
        sub.add_argument("--max-size", type=int, default=None, help="Bounding box side")
        sub.add_argument("--quality", type=int, default=None, help="AVIF quality")
        sub.add_argument("--watermark-path", default=None, help="Watermark image")

    optimize_parser.add_argument(
        "--render-interval",
        type=float,
        default=None,
        help="Minimum seconds between renderer calls",
    )

    subparsers.add_parser("version", help="Show version information")

    args = parser.parse_args()

    if args.command == "optimize":
        try:
            config = build_config(args)
            results = asyncio.run(
                optimize_keys(
                    args.bucket,
                    args.keys,
                    config,
                    endpoint_url=args.endpoint_url,
                    log_level="DEBUG" if args.debug else None,
                )
            )
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            sys.exit(2)

        for result in results:
            print(json.dumps(result.model_dump(mode="json")))
        failed = [r for r in results if r.outcome == OptimizationOutcome.FAILED]
        sys.exit(1 if failed else 0)

    elif args.command == "plan":
        try:
            config = build_config(args)
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            sys.exit(2)
        print(json.dumps(describe_plans(args.media_type, args.width, args.height, config), indent=2))
        sys.exit(0)

    elif args.command == "version":
        print("sane-image-size")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
