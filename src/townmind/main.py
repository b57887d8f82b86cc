"""
townmind entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(API or CLI).
"""

import argparse
import logging
import sys

from townmind.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_context(pairs: list[str]) -> dict[str, str]:
    context: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"context entries must be KEY=VALUE, got {pair!r}")
        context[key.strip()] = value
    return context


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the townmind application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in either API or CLI mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the townmind NPC agent")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Launch the REST API or the interactive CLI (default: api)",
    )
    parser.add_argument(
        "--agent-mode",
        default="NpcChat",
        help="Prompt mode used by the CLI (default: %(default)s)",
    )
    parser.add_argument(
        "--context",
        nargs="*",
        default=[],
        metavar="KEY=VALUE",
        help="Prompt placeholder values for the CLI, e.g. NPC_NAME=Abigail",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting townmind [%s mode]", args.mode)
    logger.debug("Settings: %s", settings.model_dump(exclude={"LLM_API_KEY"}))

    if args.mode == "api":
        # Lazy import to avoid web dependencies if not needed
        from townmind.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
    else:
        from townmind.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        try:
            context = _parse_context(args.context)
        except argparse.ArgumentTypeError as exc:
            parser.error(str(exc))
        run_cli(mode=args.agent_mode, context=context)


if __name__ == "__main__":
    main()
