from __future__ import annotations

import argparse
import asyncio
import logging
import os
import threading
from typing import Optional

from .connection import EchoConnection, InterpreterConnection
from .controller import InterpreterSession
from .io import BridgeIO, IOInterface, StdIO
from .stream import StreamBridge
from .ui import CompletionTrigger, InterpreterConsolePanel

DEMO_VOCABULARY = (
    "print",
    "console.clear",
    "console.close",
    "console.prompt",
    "stream.append",
    "stream.available",
    "stream.read",
    "stream.readline",
)

_TRIGGERS = {"tab": CompletionTrigger.TAB, "ctrl-space": CompletionTrigger.CONTROL_SPACE}


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Interactive interpreter console over a blocking input stream.")
    parser.add_argument(
        "--mode",
        choices=("interactive", "legacy"),
        default=os.getenv("CONSOLEBRIDGE_MODE", "interactive"),
        help="`interactive` launches the prompt_toolkit console, `legacy` reads plain stdin.",
    )
    parser.add_argument("--prompt", default=os.getenv("CONSOLEBRIDGE_PROMPT", InterpreterSession.PROMPT))
    parser.add_argument(
        "--trigger",
        choices=tuple(_TRIGGERS),
        default=os.getenv("CONSOLEBRIDGE_TRIGGER", "tab"),
        help="Key that opens the completion list.",
    )
    parser.add_argument("--log-level", default=os.getenv("CONSOLEBRIDGE_LOG_LEVEL", "WARNING"))
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=_log_level(args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    io = StdIO()
    connection = EchoConnection(DEMO_VOCABULARY)

    try:
        if args.mode == "legacy":
            run_legacy(connection, io, prompt=args.prompt)
        else:
            panel = InterpreterConsolePanel(connection, prompt=args.prompt, trigger=_trigger(args.trigger))
            asyncio.run(panel.run())
    except KeyboardInterrupt:
        io.write("\nInterrupted, shutting down...")


def run_legacy(connection: InterpreterConnection, io: IOInterface, prompt: str = InterpreterSession.PROMPT) -> None:
    """Pump lines from ``io`` into a stream read by the interpreter session."""
    bridge = StreamBridge()
    session = InterpreterSession(connection, BridgeIO(bridge, io.write), prompt=prompt)
    consumer = session.run_in_thread()

    def _pump() -> None:
        while consumer.is_alive():
            try:
                line = io.read(prompt)
            except EOFError:
                break
            bridge.append(line + "\n")
        bridge.close()

    threading.Thread(target=_pump, name="stdin-pump", daemon=True).start()
    consumer.join()


def _trigger(name: str) -> CompletionTrigger:
    return _TRIGGERS.get(name.strip().lower(), CompletionTrigger.TAB)


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if isinstance(level, int):
        return level
    return logging.WARNING
