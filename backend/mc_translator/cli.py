"""Command line entry point.

Usage:
    mc-translator --input ./modpack --output ./MC_Translator/output_cn
    mc-translator --config ./MC_Translator/config.json --update
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from . import __version__
from .config import DEFAULT_CONFIG_FILE, TranslatorSettings
from .core.translation import get_coordinator
from .core.translation.models import AssetStatus, RunReport

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mc-translator",
        description="Translate Minecraft mod language files and FTB quests with an LLM",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"JSON config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--input", dest="input_path", help="Modpack directory or single file")
    parser.add_argument("--output", dest="output_path", help="Output resource pack directory")
    parser.add_argument("--model", help="Model name")
    parser.add_argument("--provider", help="LiteLLM provider prefix")
    parser.add_argument("--base-url", dest="base_url", help="OpenAI-compatible endpoint")
    parser.add_argument("--api-key", dest="api_key", help="API key")
    parser.add_argument("--source-lang", dest="source_lang", help="Source language code")
    parser.add_argument("--target-lang", dest="target_lang", help="Target language code")
    parser.add_argument("--batch-size", dest="batch_size", type=int)
    parser.add_argument(
        "--update",
        action="store_true",
        help="Incremental mode: only translate entries missing from existing output",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Translate documents whose output already exists",
    )
    parser.add_argument(
        "--skip-quest",
        action="store_true",
        default=None,
        help="Do not translate FTB quest files",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Send a test request to the endpoint and exit",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List discovered assets and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def load_settings(args: argparse.Namespace) -> TranslatorSettings:
    overrides = {
        "input_path": args.input_path,
        "output_path": args.output_path,
        "model": args.model,
        "provider": args.provider,
        "base_url": args.base_url,
        "api_key": args.api_key,
        "source_lang": args.source_lang,
        "target_lang": args.target_lang,
        "batch_size": args.batch_size,
        "skip_quest": args.skip_quest,
    }
    if args.overwrite:
        overrides["skip_existing"] = False
    return TranslatorSettings.load(args.config, **overrides)


async def _run(coordinator) -> RunReport:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, coordinator.cancel)
    except NotImplementedError:
        # Windows event loops have no signal handlers
        pass
    return await coordinator.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # LiteLLM logs every request at INFO
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)

    try:
        settings = load_settings(args)
    except (ValidationError, ValueError, OSError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    coordinator = get_coordinator()(settings, incremental=args.update)

    if args.check:
        ok = asyncio.run(coordinator.gateway.health_check())
        print(f"Endpoint {settings.base_url} ({settings.model}): {'OK' if ok else 'FAILED'}")
        return 0 if ok else 1

    if not settings.input_path:
        print("No input path configured (use --input or input_path in the config file)", file=sys.stderr)
        return 2

    try:
        if args.list:
            for asset in coordinator.discover():
                print(f"{asset.kind.value:6} {asset}")
            return 0
        report = asyncio.run(_run(coordinator))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 2

    print(report.summary())
    if report.cancelled:
        return 130
    return 1 if report.by_status(AssetStatus.FAILED) else 0
