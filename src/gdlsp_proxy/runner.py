"""Proxy mode - the editor talks to us, we talk to the language server."""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from rich.console import Console

from gdlsp_proxy.message import Direction
from gdlsp_proxy.pipeline import build_default_pipeline
from gdlsp_proxy.transport.backend import open_backend
from gdlsp_proxy.transport.errors import TransportError
from gdlsp_proxy.transport.proxy import ProxySession
from gdlsp_proxy.transport.stdio import open_stdio

if TYPE_CHECKING:
    from gdlsp_proxy.config import Config
    from gdlsp_proxy.logging import LogContext

# Stdout carries protocol traffic; user-facing output goes to stderr
console = Console(stderr=True)


def _install_signal_handlers(session: ProxySession) -> list[signal.Signals]:
    """Route SIGINT/SIGTERM to a cooperative session stop."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, session.stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support
            continue
        installed.append(sig)
    return installed


async def run_proxy(config: Config, log: LogContext) -> int:
    """Run the proxy until either side disconnects.

    Args:
        config: Configuration
        log: Started logging context

    Returns:
        Exit code
    """
    logger = log.get_logger("proxy")
    backend_config = config.backend

    try:
        backend = await open_backend(
            backend_config.host,
            backend_config.port,
            timeout=backend_config.connect_timeout,
            logger=log.get_logger("backend"),
        )
    except TransportError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(
            "[dim]Is the editor running with its language server enabled "
            f"on port {backend_config.port}?[/dim]"
        )
        return 1

    try:
        client = await open_stdio()
    except TransportError as e:
        console.print(f"[red]Error: {e}[/red]")
        await backend.close()
        return 1

    pipeline = build_default_pipeline(config, log.get_logger("pipeline"))
    session = ProxySession(
        client=client,
        backend=backend,
        pipeline=pipeline,
        logger=logger,
        drain_timeout=config.shutdown.drain_timeout,
        max_message_size=config.max_message_size,
    )

    if not config.quiet:
        console.print(
            f"[green]Proxy running[/green] [dim]-> {backend_config.host}:{backend_config.port} "
            f"({len(pipeline)} transform(s))[/dim]"
        )

    installed = _install_signal_handlers(session)
    try:
        stats = await session.run()
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await backend.close()
        await client.close()

    for direction in Direction:
        loop_stats = stats[direction]
        logger.info(
            "%s: %d frames, %d modified (%s)",
            direction.value,
            loop_stats.frames,
            loop_stats.modified_frames,
            loop_stats.reason,
        )
    return 0
