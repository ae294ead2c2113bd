"""Blocking character stream fed by the console's input surface.

The input surface pushes text with :meth:`StreamBridge.append` whenever a line
is committed or something is pasted. The interpreter, running on its own
thread, pulls from the same object with :meth:`StreamBridge.read` or
:meth:`StreamBridge.readline` and blocks until text arrives.

End of stream is always reported as a value (``""`` from ``read``, ``None``
from ``readline``), never as an exception. A read ends with that value when:

- the stream was closed and everything buffered has been drained,
- the stream was reset with :meth:`StreamBridge.clear` while the read waited,
- the read itself was cancelled through its :class:`PendingRead` handle or
  through :meth:`StreamBridge.interrupt` for the thread that issued it.

Only the blocking reads wait; every other operation returns immediately.
"""
from __future__ import annotations

import enum
import logging
import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, Optional, Set, Union

logger = logging.getLogger(__name__)

EOF = ""
LINE_SEPARATOR = "\n"
CARRIAGE_RETURN = "\r"


class StreamState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class PendingRead:
    """Cancellation handle for one blocking read.

    Pass an instance as ``pending=`` to :meth:`StreamBridge.read` or
    :meth:`StreamBridge.readline`; calling :meth:`cancel` from any thread makes
    that call return end of stream. A handle that was cancelled before the
    read started makes the read return end of stream straight away.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._condition: Optional[threading.Condition] = None
        self.thread_id: Optional[int] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        condition = self._condition
        if condition is not None:
            with condition:
                condition.notify_all()

    def _attach(self, condition: threading.Condition) -> None:
        self._condition = condition
        self.thread_id = threading.get_ident()


class StreamBridge:
    """Closeable, reopenable character stream shared by producers and readers."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._buffer: Deque[str] = deque()
        self._state = StreamState.OPEN
        self._generation = 0
        self._skip_lf = False
        self._waiters: Set[PendingRead] = set()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is StreamState.CLOSED

    def append(self, text: str) -> None:
        if not text:
            return
        with self._condition:
            if self._state is StreamState.CLOSED:
                logger.debug("Dropping %d characters appended to a closed stream", len(text))
                return
            self._buffer.extend(text)
            self._condition.notify_all()

    def available(self) -> int:
        with self._condition:
            return len(self._buffer)

    def read(self, size: int = 1, pending: Optional[PendingRead] = None) -> str:
        """Return up to ``size`` characters, blocking only for the first one."""
        if size < 1:
            return EOF
        with self._condition, self._track(pending) as call:
            first = self._next_char(call, self._generation)
            if first == EOF:
                return EOF
            chars = [first]
            while len(chars) < size and self._buffer:
                chars.append(self._buffer.popleft())
            return "".join(chars)

    def readline(self, pending: Optional[PendingRead] = None) -> Optional[str]:
        """Return the next line without its separator, or ``None`` at end of stream.

        A line cut short by end of stream is returned as it stands.
        """
        chars = []
        with self._condition, self._track(pending) as call:
            generation = self._generation
            while True:
                char = self._next_char(call, generation)
                if char == EOF:
                    break
                if char == CARRIAGE_RETURN:
                    if self._buffer and self._buffer[0] == LINE_SEPARATOR:
                        self._buffer.popleft()
                    else:
                        self._skip_lf = True
                    return "".join(chars)
                if char == LINE_SEPARATOR:
                    return "".join(chars)
                chars.append(char)
        if not chars:
            return None
        return "".join(chars)

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line

    def close(self) -> None:
        with self._condition:
            if self._state is StreamState.CLOSED:
                return
            self._state = StreamState.CLOSED
            logger.debug("Stream closed with %d characters still buffered", len(self._buffer))
            self._condition.notify_all()

    def clear(self) -> None:
        """Discard buffered text and reopen, releasing every blocked reader."""
        with self._condition:
            self._buffer.clear()
            self._skip_lf = False
            self._generation += 1
            self._state = StreamState.OPEN
            logger.debug("Stream reset, released %d waiting reads", len(self._waiters))
            self._condition.notify_all()

    def interrupt(self, thread: Union[threading.Thread, int]) -> int:
        """Cancel the reads ``thread`` is blocked in. Returns how many were released."""
        ident = thread if isinstance(thread, int) else thread.ident
        with self._condition:
            released = 0
            for call in self._waiters:
                if call.thread_id == ident and not call.cancelled:
                    call._cancelled = True
                    released += 1
            if released:
                logger.debug("Interrupted %d reads on thread %s", released, ident)
                self._condition.notify_all()
            return released

    @contextmanager
    def _track(self, pending: Optional[PendingRead]) -> Iterator[PendingRead]:
        # Caller holds the condition.
        call = pending if pending is not None else PendingRead()
        call._attach(self._condition)
        self._waiters.add(call)
        try:
            yield call
        finally:
            self._waiters.discard(call)

    def _next_char(self, call: PendingRead, generation: int) -> str:
        # Caller holds the condition.
        while True:
            if call.cancelled or generation != self._generation:
                return EOF
            if self._buffer:
                char = self._buffer.popleft()
                if self._skip_lf:
                    self._skip_lf = False
                    if char == LINE_SEPARATOR:
                        continue
                return char
            if self._state is StreamState.CLOSED:
                return EOF
            self._condition.wait()
