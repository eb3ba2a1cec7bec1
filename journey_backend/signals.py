"""Lexical signal table for journey stage classification.

The table is data, not code: it lives in ``data/journey_signals.json`` with a
version string so that changes to the vocabulary can be audited and covered by
golden-file tests. This module loads and validates it, and provides the
normalisation and term-matching helpers shared by every keyword lookup in the
pipeline.
"""
import json
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from journey_backend.config import SIGNAL_TABLE_PATH
from journey_backend.errors import SignalTableError
from journey_backend.schemas import STAGE_ORDER

SIGNAL_CATEGORIES = ("keywords", "emotional_markers", "urgency_words")

_APOSTROPHES = re.compile(r"['‘’`]")
_WS = re.compile(r"\s+")


def normalise(text: object) -> str:
    """Lowercase, drop apostrophes and collapse whitespace. Non-strings become ""."""
    if not isinstance(text, str):
        return ""
    text = _APOSTROPHES.sub("", text.lower())
    return _WS.sub(" ", text).strip()


@lru_cache(maxsize=4096)
def _term_pattern(term: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(term) + r"(?![a-z0-9])")


def contains_term(normalised_text: str, term: str) -> bool:
    """Whole-word match of an already-normalised term inside normalised text."""
    if not normalised_text or not term:
        return False
    return _term_pattern(term).search(normalised_text) is not None


def matched_terms(normalised_text: str, terms) -> list[str]:
    return [term for term in terms if contains_term(normalised_text, term)]


class StageSignals(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    emotional_markers: list[str] = Field(default_factory=list)
    urgency_words: list[str] = Field(default_factory=list)

    def categories(self) -> dict[str, list[str]]:
        """Signal categories this stage actually defines (non-empty)."""
        return {
            name: getattr(self, name)
            for name in SIGNAL_CATEGORIES
            if getattr(self, name)
        }


class SignalTable(BaseModel):
    version: str
    weights: dict[str, float]
    hard_emergency_terms: list[str]
    stages: dict[str, StageSignals]

    @model_validator(mode="after")
    def _check_complete(self) -> "SignalTable":
        missing = [stage for stage in STAGE_ORDER if stage not in self.stages]
        if missing:
            raise ValueError(f"signal table is missing stages: {missing}")
        unknown = [stage for stage in self.stages if stage not in STAGE_ORDER]
        if unknown:
            raise ValueError(f"signal table has unknown stages: {unknown}")
        for category in SIGNAL_CATEGORIES:
            weight = self.weights.get(category)
            if weight is None or weight <= 0:
                raise ValueError(f"weight for {category!r} must be a positive number")
        if not self.hard_emergency_terms:
            raise ValueError("hard_emergency_terms must not be empty")

        # Terms are stored in the same normal form the input is reduced to
        self.hard_emergency_terms = [normalise(t) for t in self.hard_emergency_terms]
        for signals in self.stages.values():
            for category in SIGNAL_CATEGORIES:
                setattr(signals, category, [normalise(t) for t in getattr(signals, category)])
        return self

    def has_hard_emergency(self, normalised_text: str) -> bool:
        return any(contains_term(normalised_text, term) for term in self.hard_emergency_terms)


def parse_signal_table(raw: dict) -> SignalTable:
    try:
        return SignalTable.model_validate(raw)
    except ValidationError as e:
        raise SignalTableError(f"Invalid signal table: {e}") from e


@lru_cache(maxsize=4)
def _load_cached(path: str) -> SignalTable:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SignalTableError(f"Cannot read signal table {path}: {e}") from e
    return parse_signal_table(raw)


def load_signal_table(path: Path = SIGNAL_TABLE_PATH) -> SignalTable:
    """Load and validate the signal table; cached per path."""
    return _load_cached(str(path))
