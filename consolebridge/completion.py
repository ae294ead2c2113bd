from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document

from .models import Completion, CompletionRequest, Splice

logger = logging.getLogger(__name__)


class CompletionSource(Protocol):
    def get_completions(self, query_prefix: str) -> List[Completion]: ...


def compute_splice(text: str, anchor: int, completion: Completion) -> Optional[Splice]:
    """Span ``[anchor - chars_to_remove, anchor)`` of ``text`` replaced by the completion.

    Returns ``None`` when the anchor no longer lies inside ``text``.
    """
    if anchor < 0 or anchor > len(text):
        logger.warning(
            "Abandoning completion %r: anchor %d outside text of length %d",
            completion.label,
            anchor,
            len(text),
        )
        return None
    remove = max(0, completion.chars_to_remove)
    if remove > anchor:
        logger.warning(
            "Completion %r removes %d characters but only %d precede the anchor",
            completion.label,
            remove,
            anchor,
        )
        remove = anchor
    return Splice(start=anchor - remove, end=anchor, text=completion.insert_text)


class CompletionInserter:
    """Anchors completion requests to the input buffer and applies accepted ones."""

    def __init__(self, source: CompletionSource, surface: Buffer) -> None:
        self._source = source
        self._surface = surface
        self._request: Optional[CompletionRequest] = None

    @property
    def request(self) -> Optional[CompletionRequest]:
        return self._request

    def on_trigger_requested(self, query_prefix: str, anchor_position: int) -> Optional[CompletionRequest]:
        candidates = tuple(self._source.get_completions(query_prefix))
        if not candidates:
            self._request = None
            return None
        self._request = CompletionRequest(
            query_prefix=query_prefix,
            anchor_position=anchor_position,
            candidates=candidates,
        )
        return self._request

    def on_accept(self, selected: Completion) -> Optional[Splice]:
        request = self._request
        self._request = None
        if request is None:
            return None
        text = self._surface.text
        splice = compute_splice(text, request.anchor_position, selected)
        if splice is None:
            return None
        new_text = splice.apply(text)
        self._surface.set_document(
            Document(new_text, cursor_position=splice.start + len(splice.text)),
            bypass_readonly=True,
        )
        return splice

    def dismiss(self) -> None:
        self._request = None
