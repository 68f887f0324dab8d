import argparse
import logging
from pathlib import Path
from typing import Optional

from archread.cli.visuals import get_visuals_backend
from archread.config.run import build_run_config
from archread.config.settings import ArchiveSettings, load_settings
from archread.errors import ConfigurationError
from archread.pipeline.machine import RetrievalStateMachine
from archread.pipeline.observability import chain, default_observer_registry
from archread.pipeline.runner import RunResult, run_until_done
from archread.sources.archive import ArchiveClient
from archread.utils.load import load_ep
from archread.utils.time import parse_time

logger = logging.getLogger(__name__)

CLIENT_GROUP = "archread.clients"


def _settings_from_args(args: argparse.Namespace) -> ArchiveSettings:
    overrides = {
        "url": args.archive,
        "settle_delay_s": args.settle_delay,
        "ready_timeout_s": args.ready_timeout,
        "page_timeout_s": args.page_timeout,
        "max_points": args.max_points,
        "log_level": args.log_level,
        "visuals": args.visuals,
    }
    path = Path(args.settings) if args.settings else None
    return load_settings(path, overrides=overrides)


def _parse_times(args: argparse.Namespace, parser: argparse.ArgumentParser, time_zone: str):
    try:
        start = parse_time(args.start, time_zone)
    except ValueError:
        parser.error('Invalid start time format. Valid example is "16/06/2020 16:30:00"')
    try:
        end = parse_time(args.end, time_zone)
    except ValueError:
        parser.error('Invalid end time format. Valid example is "17/06/2020 16:30:00"')
    return start, end


def build_client(settings: ArchiveSettings) -> ArchiveClient:
    try:
        client_cls = load_ep(CLIENT_GROUP, settings.client)
    except (ValueError, ImportError) as exc:
        raise ConfigurationError(str(exc)) from exc
    return client_cls.from_settings(settings)


def handle_run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> RunResult:
    time_zone = "utc" if args.utc else "local"
    start, end = _parse_times(args, parser, time_zone)

    try:
        settings = _settings_from_args(args)
        config = build_run_config(
            {
                "time_zone": time_zone,
                "sampling": "raw" if args.raw else "linear",
                "fixed_interval": args.fixed,
                "output_path": args.output,
                "start": start,
                "end": end,
            }
        )
        client = build_client(settings)
    except ConfigurationError as exc:
        logger.error("error: %s", exc.message)
        parser.print_usage()
        raise SystemExit(2) from exc

    root_logger = logging.getLogger()
    if args.log_level is None and settings.log_level:
        root_logger.setLevel(settings.log_level)

    backend = get_visuals_backend(settings.visuals)
    observer = chain([backend.observer(), default_observer_registry().get("pages", logger)])
    machine = RetrievalStateMachine(
        config,
        args.channels,
        client,
        settings=settings,
        observer=observer,
    )
    try:
        with backend.session():
            result = run_until_done(machine)
    finally:
        client.close()

    return _finish(result)


def _finish(result: RunResult) -> RunResult:
    if result.ok:
        logger.info("rad complete")
        return result
    error: Optional[Exception] = result.error
    if error is not None:
        logger.error("%s", error)
    logger.error("rad terminated")
    raise SystemExit(2 if isinstance(error, ConfigurationError) else 1)
