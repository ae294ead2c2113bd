from __future__ import annotations

from typing import Callable, List

from .stream import StreamBridge


class IOInterface:
    """Line source and sink for the interpreter loop.

    ``read`` returns one line without its separator. When the source has no
    more lines (stream closed, reset, or the read was cancelled) it raises
    ``EOFError``, the way ``input()`` does, so the loop has one exit path.
    """

    def read(self, prompt: str = "") -> str:  # pragma: no cover - interface contract
        raise NotImplementedError

    def write(self, text: str = "") -> None:  # pragma: no cover - interface contract
        raise NotImplementedError


class StdIO(IOInterface):
    """Plain terminal lines; ``input()`` already raises ``EOFError`` on Ctrl+D."""

    def read(self, prompt: str = "") -> str:
        return input(prompt)

    def write(self, text: str = "") -> None:
        print(text, flush=True)


class BufferedIO(IOInterface):
    """Scripted lines in, captured prompts and output out."""

    def __init__(self, scripted_inputs: List[str]):
        self._inputs = list(scripted_inputs)
        self.outputs: List[str] = []

    def read(self, prompt: str = "") -> str:
        self.outputs.append(prompt)
        if not self._inputs:
            raise EOFError("Script exhausted")
        return self._inputs.pop(0)

    def write(self, text: str = "") -> None:
        self.outputs.append(text)


class BridgeIO(IOInterface):
    """Reads lines from a :class:`StreamBridge` and hands output to ``writer``.

    The prompt is not echoed; whoever feeds the bridge shows it.
    """

    def __init__(self, bridge: StreamBridge, writer: Callable[[str], None]):
        self._bridge = bridge
        self._writer = writer

    def read(self, prompt: str = "") -> str:
        line = self._bridge.readline()
        if line is None:
            raise EOFError("Input stream closed")
        return line

    def write(self, text: str = "") -> None:
        self._writer(text)
