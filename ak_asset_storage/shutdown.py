"""Waiting for a termination request from the operating system."""

from __future__ import annotations

import asyncio
import os
import signal
from typing import Any


def _shutdown_signals() -> list[signal.Signals]:
    signals = [signal.SIGINT]
    if os.name != "nt" and hasattr(signal, "SIGTERM"):
        signals.append(signal.SIGTERM)
    return signals


async def wait_for_shutdown_signal() -> signal.Signals:
    """Wait until Ctrl+C or, on Unix, SIGTERM arrives; return the signal."""
    loop = asyncio.get_running_loop()
    received: asyncio.Future[signal.Signals] = loop.create_future()

    def on_signal(sig: signal.Signals) -> None:
        if not received.done():
            received.set_result(sig)

    def fallback(signum: int, _frame: Any) -> None:
        loop.call_soon_threadsafe(on_signal, signal.Signals(signum))

    installed: list[signal.Signals] = []
    previous: dict[signal.Signals, Any] = {}
    try:
        for sig in _shutdown_signals():
            try:
                loop.add_signal_handler(sig, on_signal, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                previous[sig] = signal.signal(sig, fallback)
        return await received
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        for sig, handler in previous.items():
            signal.signal(sig, handler)