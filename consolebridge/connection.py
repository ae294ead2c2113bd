from __future__ import annotations

from typing import Iterable, List, Optional, Protocol

from .models import Completion


class InterpreterConnection(Protocol):
    def get_title(self) -> str: ...

    def get_completions(self, cmd: str) -> List[Completion]: ...

    def execute(self, line: str) -> Optional[str]: ...


class EchoConnection(InterpreterConnection):
    """Demo interpreter that echoes lines and completes dotted names."""

    def __init__(self, vocabulary: Iterable[str] = (), title: str = "Echo") -> None:
        self._vocabulary = sorted(set(vocabulary))
        self._title = title

    def get_title(self) -> str:
        return self._title

    def get_completions(self, cmd: str) -> List[Completion]:
        token = self._trailing_token(cmd)
        result: List[Completion] = []
        for name in self._vocabulary:
            if name.startswith(token) and name != token:
                result.append(
                    Completion(
                        label=name,
                        insert_text=name,
                        chars_to_remove=len(token),
                        description=self._describe(name),
                    )
                )
        return result

    def execute(self, line: str) -> Optional[str]:
        return line

    @staticmethod
    def _trailing_token(cmd: str) -> str:
        if not cmd or cmd[-1].isspace():
            return ""
        return cmd.split()[-1]

    @staticmethod
    def _describe(name: str) -> str:
        parent, _, _ = name.rpartition(".")
        return f"in {parent}" if parent else ""
