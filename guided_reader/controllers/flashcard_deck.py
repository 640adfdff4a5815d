from __future__ import annotations

from typing import List, Optional, Sequence

from guided_reader.domain.segments import VocabularyItem


class FlashcardDeck:
    """Card index + flipped state over the vocabulary (wraps at both ends)."""

    def __init__(self, items: Sequence[VocabularyItem] = ()) -> None:
        self._items: List[VocabularyItem] = list(items)
        self._index = 0
        self._flipped = False

    def set_items(self, items: Sequence[VocabularyItem]) -> None:
        self._items = list(items)
        self._index = 0
        self._flipped = False

    def __len__(self) -> int:
        return len(self._items)

    @property
    def index(self) -> int:
        return self._index

    @property
    def flipped(self) -> bool:
        return self._flipped

    def current(self) -> Optional[VocabularyItem]:
        if not self._items:
            return None
        return self._items[self._index]

    def flip(self) -> bool:
        self._flipped = not self._flipped
        return self._flipped

    def next(self) -> Optional[VocabularyItem]:
        if not self._items:
            return None
        self._flipped = False
        self._index = (self._index + 1) % len(self._items)
        return self.current()

    def previous(self) -> Optional[VocabularyItem]:
        if not self._items:
            return None
        self._flipped = False
        self._index = (self._index - 1 + len(self._items)) % len(self._items)
        return self.current()
