from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(slots=True, frozen=True)
class Completion:
    """Single completion suggestion offered by an interpreter."""

    label: str
    insert_text: str
    chars_to_remove: int = 0
    description: str = ""


@dataclass(slots=True)
class CompletionRequest:
    """Completion popup state anchored at the offset where it was triggered."""

    query_prefix: str
    anchor_position: int
    candidates: Tuple[Completion, ...]
    selected_index: int = field(default=0, compare=False)

    def __setattr__(self, name: str, value: object) -> None:
        if name == "anchor_position" and hasattr(self, "anchor_position"):
            raise AttributeError("anchor_position is fixed for the life of a request")
        object.__setattr__(self, name, value)

    @property
    def selected(self) -> Completion:
        return self.candidates[self.selected_index]


@dataclass(slots=True, frozen=True)
class Splice:
    """Replace ``text[start:end]`` with ``text``."""

    start: int
    end: int
    text: str

    def apply(self, content: str) -> str:
        return content[: self.start] + self.text + content[self.end :]
