"""Memory entry records and provenance tags."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from logic.sentences import Sentence
from logic.terms import Term


class Provenance(str, Enum):
    """Why a fact entered memory."""

    BACKGROUND = "background"
    PERCEPTION = "perception"
    REACTION = "reaction"
    MEMORIZE = "memorize"


class EntryIdCounter:
    """Issues increasing ids to memory entries; owned by one BeliefMemory."""

    def __init__(self, start: int = 0) -> None:
        self._next = start

    def next(self) -> int:
        value = self._next
        self._next += 1
        return value


@dataclass
class TermEntry:
    term: Term
    provenance: Provenance
    activation: int
    time: int
    entry_id: int = 0


@dataclass
class SentenceEntry:
    sentence: Sentence
    provenance: Provenance
    activation: int
    time: int
    entry_id: int = 0
    time_end: int | None = None
    previous: SentenceEntry | None = None
