from __future__ import annotations

import logging
import threading

from .connection import InterpreterConnection
from .io import IOInterface

logger = logging.getLogger(__name__)


class InterpreterSession:
    """Blocking read-execute loop run on the interpreter's own thread."""

    PROMPT = ">>> "

    def __init__(
        self,
        connection: InterpreterConnection,
        io: IOInterface,
        prompt: str = PROMPT,
    ) -> None:
        self._connection = connection
        self._io = io
        self._prompt = prompt
        self._running = False
        self._quit_requested = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested

    def run(self) -> None:
        self._running = True
        self._quit_requested = False
        self._io.write(f"{self._connection.get_title()} interpreter. Type :help for commands.")

        while self._running:
            try:
                line = self._io.read(self._prompt)
            except EOFError:
                logger.debug("Input ended, leaving interpreter loop")
                break
            line = line.strip()
            if not line:
                continue
            if line.startswith(":"):
                self._handle_command(line[1:])
            else:
                self._execute(line)

        self._running = False
        self._io.write("Session ended.")

    def run_in_thread(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="interpreter", daemon=True)
        thread.start()
        return thread

    def _handle_command(self, command: str) -> None:
        normalized = command.strip()
        if normalized in {"q", "quit", "exit"}:
            self._running = False
            self._quit_requested = True
            return
        if normalized in {"h", "help"}:
            self._show_help()
            return
        self._io.write(f"Unknown command: :{command}")

    def _execute(self, line: str) -> None:
        result = self._connection.execute(line)
        if result:
            self._io.write(result)

    def _show_help(self) -> None:
        self._io.write(
            "Commands:\n"
            "  :help            Show this help\n"
            "  :quit            Leave the interpreter\n"
            "Anything else is passed to the interpreter."
        )
