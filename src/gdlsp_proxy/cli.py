"""Command-line interface for gdlsp-proxy."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from gdlsp_proxy import __version__

# Legacy positional switches kept for existing editor configurations
LEGACY_LOG_MODES = {
    "log": 1,
    "logv": 2,
    "logvv": 3,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gdlsp-proxy",
        description=(
            "Language server proxy - forwards editor traffic to a running "
            "language server and cleans up completion and documentation results"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "log_mode",
        nargs="?",
        choices=sorted(LEGACY_LOG_MODES),
        help="Enable file logging: log (normal), logv (verbose), logvv (very verbose)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output on stderr",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: ./gdlsp-proxy.yaml)",
    )
    parser.add_argument(
        "--host",
        help="Language server host (default: localhost)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Language server port (default: 6005)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: $GDLSP_PROXY_LOG or ./gdlsp-proxy.log)",
    )
    parser.add_argument(
        "--language",
        help="Code fence language label (default: gdscript)",
    )
    parser.add_argument(
        "--no-completion-snippets",
        dest="completion_snippets",
        action="store_false",
        default=None,
        help="Do not rewrite callable completions into snippets",
    )
    parser.add_argument(
        "--no-documentation",
        dest="documentation",
        action="store_false",
        default=None,
        help="Do not normalize documentation",
    )
    return parser


def verbosity_from_args(parsed: argparse.Namespace) -> int | None:
    """Combined verbosity from the legacy switch and -v flags, if any."""
    count = max(LEGACY_LOG_MODES.get(parsed.log_mode, 0), parsed.verbose)
    return count or None


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    from rich.console import Console

    from gdlsp_proxy.config import ConfigError, load_config
    from gdlsp_proxy.logging import LogContext

    console = Console(stderr=True)

    try:
        config = load_config(
            config_path=parsed.config,
            host=parsed.host,
            port=parsed.port,
            verbosity=verbosity_from_args(parsed),
            log_file=parsed.log_file,
            language=parsed.language,
            completion_snippets=parsed.completion_snippets,
            documentation=parsed.documentation,
            quiet=parsed.quiet or None,
        )
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        return 1

    log = LogContext(
        config.logging.verbosity,
        config.logging.file,
        queue_size=config.logging.queue_size,
        flush_every=config.logging.flush_every,
    )
    try:
        log.start()
    except OSError as e:
        console.print(f"[red]Cannot open log file {config.logging.file}: {e}[/red]")
        return 1

    from gdlsp_proxy.runner import run_proxy

    try:
        return asyncio.run(run_proxy(config, log))
    except KeyboardInterrupt:
        return 0
    finally:
        log.close()
