"""Command-line interface for FeedView."""

import argparse
import asyncio
import logging
import sys

import yaml

from core.config.config_loader import ConfigInvalid
from core.config.user_store import SECRET_KEYS, UserConfigStore
from core.interfaces.events import Event, EventType
from core.interfaces.inference import InferenceError
from core.interfaces.storage import StorageError
from core.logging_setup import setup_logging
from feedview.orchestrator import FeedViewOrchestrator

logger = logging.getLogger(__name__)

# Events worth a line on the console while watching
WATCHED_EVENTS = (
    EventType.SELECTION_CHANGED,
    EventType.LIST_UPDATED,
    EventType.POLL_FAILED,
    EventType.INDEX_CHANGED,
    EventType.AUTOPLAY_CHANGED,
    EventType.ANALYSIS_READY,
    EventType.ANALYSIS_ERROR,
    EventType.ANALYSIS_SKIPPED,
    EventType.DISPLAY_CLEARED,
)


def _load(args) -> FeedViewOrchestrator:
    config = FeedViewOrchestrator.load_config(config_path=args.config, user_id=args.user)
    setup_logging(config.logging, verbose=args.verbose)
    return FeedViewOrchestrator(config=config)


def _log_event(event: Event) -> None:
    data = event.data
    if event.type == EventType.INDEX_CHANGED:
        position = "-" if data.get("index") is None else data["index"] + 1
        logger.info(f"[{position}/{data.get('total')}] {data.get('key')}")
    elif event.type == EventType.ANALYSIS_READY:
        logger.info(f"Analysis for {data.get('key')}:\n{data.get('analysis_text')}")
    else:
        logger.info(f"{event.type.value}: {data}")


def cmd_watch(args):
    """Watch a feed until interrupted.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load(args)

    if args.interval is not None:
        orchestrator.config.polling.interval_seconds = args.interval
    if args.duration is not None:
        orchestrator.config.slideshow.slide_duration_seconds = args.duration
    if args.mode:
        orchestrator.config.slideshow.mode = args.mode
    if args.analysis is not None:
        orchestrator.config.analysis.enabled = args.analysis

    async def run():
        orchestrator.start()
        bus = orchestrator.event_bus
        for event_type in WATCHED_EVENTS:
            bus.subscribe(event_type, _log_event)

        try:
            selection = await orchestrator.select(args.level1, args.level2, args.level3)
            if selection is None:
                logger.error(f"Nothing to watch under {args.level1}/{args.level2}")
                return 1

            logger.info(f"Watching {selection} (Ctrl+C to stop)")
            await asyncio.Event().wait()
        finally:
            for event_type in WATCHED_EVENTS:
                bus.unsubscribe(event_type, _log_event)
            await orchestrator.stop()
        return 0

    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped")
        return 0


def cmd_browse(args):
    """List the folders under a path.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load(args)
    storage = orchestrator.build_storage()

    parts = [orchestrator.config.storage.base_folder.strip("/")] if orchestrator.config.storage.base_folder.strip("/") else []
    parts.extend(part.strip("/") for part in args.path)
    prefix = "/".join(parts) + "/" if parts else ""

    async def run():
        folders = await storage.list_folders(prefix)
        images = await storage.list_images(prefix)
        return folders, images

    folders, images = asyncio.run(run())
    for name in folders:
        print(f"{name}/")
    if images:
        print(f"({len(images)} images)")
    return 0


def cmd_check(args):
    """Check that storage is reachable.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load(args)
    orchestrator.validate()
    storage = orchestrator.build_storage()

    ok = asyncio.run(storage.check_connection())
    if ok:
        logger.info(f"Connected to {storage.provider_name} bucket '{storage.bucket}'")
        return 0

    logger.error(f"Cannot reach {storage.provider_name} bucket '{storage.bucket}'")
    return 1


def cmd_model_info(args):
    """Print the description of a model.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load(args)
    inference = orchestrator.build_inference(force=True)
    model_name = args.model or orchestrator.config.model.model_name

    info = asyncio.run(inference.model_info(model_name))
    print(info.get("description", ""))
    return 0


def cmd_config(args):
    """Show or save the effective configuration.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load(args)
    config = orchestrator.config

    if args.action == "save":
        path = UserConfigStore().save_config(args.user or "default", config)
        logger.info(f"Configuration saved to {path}")
        return 0

    data = config.to_dict()
    for key in SECRET_KEYS:
        if data["storage"].get(key):
            data["storage"][key] = "********"
    print(yaml.dump(data, default_flow_style=False, sort_keys=False), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedview",
        description="FeedView - Live camera image feed with AI analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global options
    parser.add_argument(
        "--config",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--user",
        help="Overlay this user's saved configuration"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    # Subcommands
    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command"
    )

    # Watch command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch a customer / device / date feed"
    )
    watch_parser.add_argument("level1", help="Customer folder")
    watch_parser.add_argument("level2", help="Device folder")
    watch_parser.add_argument(
        "level3",
        nargs="?",
        help="Date folder (default: latest)"
    )
    watch_parser.add_argument(
        "--mode",
        choices=["continuous", "latest_only"],
        help="Slideshow mode"
    )
    watch_parser.add_argument(
        "--interval",
        type=float,
        help="Polling interval in seconds"
    )
    watch_parser.add_argument(
        "--duration",
        type=float,
        help="Slide duration in seconds"
    )
    watch_parser.add_argument(
        "--analysis",
        dest="analysis",
        action="store_true",
        default=None,
        help="Enable AI analysis"
    )
    watch_parser.add_argument(
        "--no-analysis",
        dest="analysis",
        action="store_false",
        help="Disable AI analysis"
    )
    watch_parser.set_defaults(func=cmd_watch)

    # Browse command
    browse_parser = subparsers.add_parser(
        "browse",
        help="List folders under a path"
    )
    browse_parser.add_argument(
        "path",
        nargs="*",
        help="Folder path segments (empty = customers)"
    )
    browse_parser.set_defaults(func=cmd_browse)

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check storage connectivity"
    )
    check_parser.set_defaults(func=cmd_check)

    # Model info command
    model_parser = subparsers.add_parser(
        "model-info",
        help="Describe the configured detection model"
    )
    model_parser.add_argument(
        "--model",
        help="Model name (default: from configuration)"
    )
    model_parser.set_defaults(func=cmd_model_info)

    # Config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show or save the effective configuration"
    )
    config_parser.add_argument(
        "action",
        choices=["show", "save"],
        help="show: print as YAML, save: store for --user"
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        sys.exit(1)

    try:
        code = args.func(args)
    except ConfigInvalid as e:
        logger.error(str(e))
        for problem in e.problems:
            logger.error(f"  - {problem}")
        code = 2
    except (StorageError, InferenceError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        code = 1

    sys.exit(code or 0)


if __name__ == "__main__":
    main()
