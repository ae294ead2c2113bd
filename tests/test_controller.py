from __future__ import annotations

from typing import List, Optional

from consolebridge.connection import EchoConnection, InterpreterConnection
from consolebridge.controller import InterpreterSession
from consolebridge.io import BridgeIO, BufferedIO
from consolebridge.models import Completion
from consolebridge.stream import StreamBridge


class FakeConnection(InterpreterConnection):
    def __init__(self, results: Optional[dict[str, str]] = None):
        self.results = results or {}
        self.executed: List[str] = []

    def get_title(self) -> str:
        return "Fake"

    def get_completions(self, cmd: str) -> List[Completion]:
        return []

    def execute(self, line: str) -> Optional[str]:
        self.executed.append(line)
        return self.results.get(line)


def run_session(connection: InterpreterConnection, io) -> InterpreterSession:
    session = InterpreterSession(connection, io)
    session.run()
    return session


def test_session_executes_lines_until_end_of_input():
    connection = FakeConnection({"1 + 1": "2"})
    io = BufferedIO(["1 + 1", "   ", "noop"])

    session = run_session(connection, io)

    assert connection.executed == ["1 + 1", "noop"]
    assert "2" in io.outputs
    assert io.outputs[-1] == "Session ended."
    assert not session.running


def test_banner_uses_connection_title():
    io = BufferedIO([])

    run_session(FakeConnection(), io)

    assert io.outputs[0].startswith("Fake interpreter.")


def test_quit_command_stops_before_remaining_input():
    connection = FakeConnection()
    io = BufferedIO([":quit", "never"])

    run_session(connection, io)

    assert connection.executed == []


def test_help_command_lists_available_actions():
    io = BufferedIO([":help"])

    run_session(FakeConnection(), io)

    assert any("Commands:" in line for line in io.outputs)
    assert any(":quit" in line for line in io.outputs)


def test_unknown_command_reports_error():
    io = BufferedIO([":bogus"])

    run_session(FakeConnection(), io)

    assert any("Unknown command: :bogus" in line for line in io.outputs)


def test_session_thread_reads_from_bridge_and_ends_on_close():
    bridge = StreamBridge()
    outputs: List[str] = []
    connection = FakeConnection({"hello": "world"})
    session = InterpreterSession(connection, BridgeIO(bridge, outputs.append))

    thread = session.run_in_thread()
    bridge.append("hello\n")
    bridge.close()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert connection.executed == ["hello"]
    assert "world" in outputs
    assert outputs[-1] == "Session ended."


def test_session_thread_ends_when_interrupted():
    bridge = StreamBridge()
    session = InterpreterSession(FakeConnection(), BridgeIO(bridge, lambda text: None))

    thread = session.run_in_thread()
    for _ in range(200):
        if bridge.interrupt(thread):
            break
        thread.join(timeout=0.01)
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert not bridge.closed


def test_echo_connection_completes_trailing_token():
    connection = EchoConnection(["stream.read", "stream.readline", "print"])

    completions = connection.get_completions("x = stream.re")

    assert [c.insert_text for c in completions] == ["stream.read", "stream.readline"]
    assert all(c.chars_to_remove == len("stream.re") for c in completions)
    assert completions[0].description == "in stream"


def test_echo_connection_offers_everything_after_whitespace():
    connection = EchoConnection(["b", "a"])

    completions = connection.get_completions("call ")

    assert [c.label for c in completions] == ["a", "b"]
    assert all(c.chars_to_remove == 0 for c in completions)
    assert connection.execute("same") == "same"


def test_quit_requested_only_after_quit_command():
    ended = InterpreterSession(FakeConnection(), BufferedIO(["x"]))
    ended.run()
    quitting = InterpreterSession(FakeConnection(), BufferedIO([":q"]))
    quitting.run()

    assert not ended.quit_requested
    assert quitting.quit_requested
