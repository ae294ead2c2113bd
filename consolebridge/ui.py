from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import List, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl
from prompt_toolkit.layout.margins import ScrollbarMargin
from prompt_toolkit.layout.processors import BeforeInput
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from .completion import CompletionInserter
from .connection import InterpreterConnection
from .controller import InterpreterSession
from .io import BridgeIO
from .stream import StreamBridge


class CompletionTrigger(enum.Enum):
    TAB = "tab"
    CONTROL_SPACE = "c-space"


@dataclass(slots=True)
class _PanelState:
    prompt: str
    status_message: str


class InterpreterConsolePanel:
    """prompt_toolkit console feeding typed and pasted lines to an interpreter thread."""

    def __init__(
        self,
        connection: InterpreterConnection,
        prompt: str = InterpreterSession.PROMPT,
        trigger: CompletionTrigger = CompletionTrigger.TAB,
    ) -> None:
        self._connection = connection
        self._trigger = trigger
        self._state = _PanelState(prompt=prompt, status_message="")
        self.stdin = StreamBridge()
        self._input_buffer = Buffer(multiline=False)
        self._output_buffer = Buffer(read_only=True)
        self._inserter = CompletionInserter(connection, self._input_buffer)
        self._output_lock = threading.Lock()
        self._pending_output: List[str] = []
        self._app: Optional[Application] = None
        self._style = Style.from_dict(
            {
                "frame.border": "#5c5c5c",
                "output": "#dddddd",
                "prompt": "#8ef58e bold",
                "completions": "bg:#202020 #a0a0a0",
                "completions.selected": "bg:#3a6ea5 #ffffff bold",
                "completions.meta": "italic #888888",
                "status": "reverse",
            }
        )

    @property
    def prompt(self) -> str:
        return self._state.prompt

    def set_prompt(self, prompt: str) -> None:
        self._state.prompt = prompt
        self._refresh_ui()

    async def run(self) -> None:
        """Run the console until the interpreter quits or the user exits."""
        self._build_application()
        assert self._app is not None  # for mypy
        session = InterpreterSession(
            self._connection,
            BridgeIO(self.stdin, self._write_line),
            prompt=self._state.prompt,
        )
        threading.Thread(target=self._run_session, args=(session,), name="interpreter", daemon=True).start()
        try:
            await self._app.run_async()
        finally:
            self.close()

    def write_output(self, text: str) -> None:
        """Append ``text`` to the output pane; safe to call from any thread."""
        with self._output_lock:
            self._pending_output.append(text)
        app = self._app
        if app is not None and app.is_running and app.loop is not None:
            app.loop.call_soon_threadsafe(self._flush_output)
        else:
            self._flush_output()

    def clear(self) -> None:
        self._output_buffer.set_document(Document(""), bypass_readonly=True)
        self._input_buffer.reset()
        self._inserter.dismiss()
        self.stdin.clear()
        self._set_status("Cleared.")

    def close(self) -> None:
        self.stdin.close()

    def _run_session(self, session: InterpreterSession) -> None:
        # A reset releases the blocked read with end of stream; start over on the reopened stream.
        while True:
            session.run()
            if session.quit_requested or self.stdin.closed:
                break
        app = self._app
        if app is not None and app.is_running and app.loop is not None:
            app.loop.call_soon_threadsafe(app.exit)

    def _build_application(self) -> None:
        input_kb = KeyBindings()
        popup_open = Condition(lambda: self._inserter.request is not None)

        @input_kb.add(self._trigger.value)
        def _complete(event) -> None:
            self._trigger_completion()

        @input_kb.add("up", filter=popup_open)
        def _completion_up(event) -> None:
            self._move_selection(-1)

        @input_kb.add("down", filter=popup_open)
        def _completion_down(event) -> None:
            self._move_selection(1)

        @input_kb.add("escape", filter=popup_open)
        def _completion_dismiss(event) -> None:
            self._inserter.dismiss()
            self._refresh_ui()

        @input_kb.add("enter")
        def _enter(event) -> None:
            if self._inserter.request is not None:
                self._accept_completion()
            else:
                self._commit_input()

        @input_kb.add(Keys.BracketedPaste)
        def _paste(event) -> None:
            self._handle_paste(event.data)

        input_window = Window(
            content=BufferControl(
                buffer=self._input_buffer,
                input_processors=[BeforeInput(lambda: self._state.prompt, style="class:prompt")],
                key_bindings=input_kb,
            ),
            height=1,
        )
        output_window = Window(
            content=BufferControl(buffer=self._output_buffer, focusable=False),
            style="class:output",
            wrap_lines=True,
            right_margins=[ScrollbarMargin(display_arrows=True)],
        )
        completion_window = ConditionalContainer(
            Window(
                content=FormattedTextControl(self._render_completions),
                style="class:completions",
                height=6,
                always_hide_cursor=True,
            ),
            filter=popup_open,
        )

        root_container = HSplit(
            [
                Frame(output_window, title=self._connection.get_title()),
                input_window,
                completion_window,
                Window(
                    height=1,
                    content=FormattedTextControl(self._render_status),
                    style="class:status",
                    always_hide_cursor=True,
                ),
            ]
        )

        kb = KeyBindings()

        @kb.add("c-c")
        @kb.add("c-q")
        def _global_exit(event) -> None:
            event.app.exit()

        @kb.add("c-d")
        def _global_end_input(event) -> None:
            self.close()
            self._set_status("Input closed.")

        @kb.add("c-l")
        def _global_clear(event) -> None:
            self.clear()

        self._app = Application(
            layout=Layout(root_container, focused_element=input_window),
            key_bindings=kb,
            style=self._style,
            full_screen=True,
        )
        self._set_status(f"{self._trigger_label()} completes  •  Ctrl+L clear  •  Ctrl+D end input  •  Ctrl+C quit")

    def _commit_input(self) -> None:
        line = self._input_buffer.text
        self._input_buffer.reset()
        self._inserter.dismiss()
        self._submit_line(line)

    def _handle_paste(self, data: str) -> None:
        data = data.replace("\r\n", "\n").replace("\r", "\n")
        document = self._input_buffer.document
        combined = document.text_before_cursor + data + document.text_after_cursor
        *lines, remainder = combined.split("\n")
        for line in lines:
            self._submit_line(line)
        self._inserter.dismiss()
        self._input_buffer.set_document(
            Document(remainder, cursor_position=len(remainder) - len(document.text_after_cursor))
        )

    def _submit_line(self, line: str) -> None:
        self._append_output(f"{self._state.prompt}{line}\n")
        self.stdin.append(line + "\n")

    def _trigger_completion(self) -> None:
        document = self._input_buffer.document
        request = self._inserter.on_trigger_requested(document.text_before_cursor, document.cursor_position)
        if request is None:
            self._set_status("No completions.")
        else:
            self._set_status(f"{len(request.candidates)} completions. Enter inserts, Esc closes.")

    def _move_selection(self, offset: int) -> None:
        request = self._inserter.request
        if request is None:
            return
        request.selected_index = max(0, min(len(request.candidates) - 1, request.selected_index + offset))
        self._refresh_ui()

    def _accept_completion(self) -> None:
        request = self._inserter.request
        if request is None:
            return
        if self._inserter.on_accept(request.selected) is None:
            self._set_status("Completion no longer fits the input; nothing inserted.")
        self._refresh_ui()

    def _render_completions(self) -> List[tuple[str, str]]:
        request = self._inserter.request
        if request is None:
            return []

        fragments: List[tuple[str, str]] = []
        for idx, completion in enumerate(request.candidates):
            selected = idx == request.selected_index
            marker = "▶" if selected else " "
            style = "class:completions.selected" if selected else "class:completions"
            fragments.append((style, f"{marker} {completion.label}"))
            if completion.description:
                fragments.append(("class:completions.meta", f"  {completion.description}"))
            if idx != len(request.candidates) - 1:
                fragments.append(("", "\n"))
        return fragments

    def _render_status(self) -> List[tuple[str, str]]:
        return [("class:status", self._state.status_message)]

    def _write_line(self, text: str) -> None:
        self.write_output(text + "\n")

    def _flush_output(self) -> None:
        with self._output_lock:
            text = "".join(self._pending_output)
            self._pending_output.clear()
        if text:
            self._append_output(text)

    def _append_output(self, text: str) -> None:
        content = self._output_buffer.text + text
        self._output_buffer.set_document(Document(content, cursor_position=len(content)), bypass_readonly=True)
        self._refresh_ui()

    def _trigger_label(self) -> str:
        return "Tab" if self._trigger is CompletionTrigger.TAB else "Ctrl+Space"

    def _set_status(self, text: str) -> None:
        self._state.status_message = text
        self._refresh_ui()

    def _refresh_ui(self) -> None:
        if self._app:
            self._app.invalidate()
