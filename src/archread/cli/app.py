import argparse
import logging
import math
from typing import Optional, Sequence

from archread import __version__
from archread.cli.commands.run import handle_run
from archread.cli.help import GENERAL
from archread.config.run import MAX_CHANNELS
from archread.config.settings import VISUAL_CHOICES


def _fixed_seconds(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError("fixed time has invalid format") from None
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError("fixed time has invalid format")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rad",
        description="Read archived PV history into an aligned text table.",
        epilog=GENERAL,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("output", metavar="OUTPUT_FILE", help="file to write the table to")
    parser.add_argument("start", metavar="START_TIME", help='e.g. "16/06/2020 16:30:00"')
    parser.add_argument("end", metavar="END_TIME", help='e.g. "17/06/2020 16:30:00"')
    parser.add_argument(
        "channels",
        metavar="PV_NAME",
        nargs="+",
        help=f"channel names to read (1 to {MAX_CHANNELS})",
    )
    parser.add_argument("--utc", action="store_true", help="use UTC rather than local time")
    parser.add_argument("--raw", action="store_true", help="request raw rather than linear data")
    parser.add_argument(
        "--fixed",
        type=_fixed_seconds,
        metavar="SECONDS",
        help="resample onto a fixed interval in seconds",
    )
    parser.add_argument("--archive", metavar="URL", help="archive retrieval endpoint")
    parser.add_argument("--settings", metavar="PATH", help="YAML settings file")
    parser.add_argument("--settle-delay", type=float, metavar="SECONDS", help="initial settling delay")
    parser.add_argument("--ready-timeout", type=float, metavar="SECONDS", help="archive readiness timeout")
    parser.add_argument("--page-timeout", type=float, metavar="SECONDS", help="per-page response timeout")
    parser.add_argument("--max-points", type=int, metavar="N", help="maximum samples per page")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="set logging level (default: INFO)",
    )
    parser.add_argument(
        "--visuals",
        choices=list(VISUAL_CHOICES),
        default=None,
        help="progress renderer: auto (default), tqdm, rich, or off",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if len(args.channels) > MAX_CHANNELS:
        parser.error(f"at most {MAX_CHANNELS} PV names may be given")

    level_name = (args.log_level or "INFO").upper()
    logging.basicConfig(level=logging._nameToLevel.get(level_name, logging.INFO), format="%(message)s")

    handle_run(args, parser)
