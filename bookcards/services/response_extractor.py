"""Recover flashcards from raw LLM completions.

Models are asked for a bare JSON object, but what comes back drifts: a
fenced ```json block, a bare array of cards, prose with card objects
sprinkled through it, or plain "Question: ... / Answer: ..." lines.  Rather
than one brittle parser, extraction runs an ordered chain of strategies.
Each strategy is a pure function ``str -> ExtractedBatch | None``; the first
one that yields at least one usable card wins.

Strategy order
--------------
1. ``fenced_json``       parse the body of the first fenced block, then the
                         whole text with fence markers removed.
                         An object with a ``flashcards`` array also carries
                         ``title``/``author``/``language``; a bare array is
                         the card list itself.
2. ``scattered_objects`` decode a JSON object at each ``{`` offset.  Card
                         objects and ``flashcards`` wrappers are kept;
                         malformed spans are skipped.
3. ``line_tagged``       ``Question:`` opens a card, ``Answer:`` closes it.

Every field is run through the text normalizer before it leaves this module,
and cards whose question or answer is empty after sanitizing are dropped.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

from bookcards.models.book import FlashcardDraft
from bookcards.models.ingestion import ExtractedBatch
from bookcards.utils.errors import EmptyResultError, InvalidInputError
from bookcards.utils.logging import get_logger
from bookcards.utils.text_normalizer import clean_text, sanitize_answer, sanitize_question

# Body of a fenced block, markers and surrounding blank lines excluded.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)

# Opening (```json) and closing (```) fence markers anywhere in the text.
_FENCE_MARKERS = re.compile(r"```(?:json)?", re.IGNORECASE)

_QUESTION_LINE = re.compile(r"^\s*question\s*:", re.IGNORECASE)
_ANSWER_LINE = re.compile(r"^\s*answer\s*:", re.IGNORECASE)

Strategy = Callable[[str], ExtractedBatch | None]


# ------------------------------------------------------------------
# Field coercion
# ------------------------------------------------------------------


def _coerce_card(obj: Any) -> FlashcardDraft | None:
    """Turn one decoded JSON value into a sanitized card, or ``None``."""
    if not isinstance(obj, dict):
        return None
    question = obj.get("question")
    answer = obj.get("answer")
    if not isinstance(question, str) or not isinstance(answer, str):
        return None
    question = sanitize_question(question)
    answer = sanitize_answer(answer)
    if not question or not answer:
        return None
    return FlashcardDraft(question=question, answer=answer)


def _coerce_cards(items: Any) -> list[FlashcardDraft]:
    if not isinstance(items, list):
        return []
    cards = (_coerce_card(item) for item in items)
    return [card for card in cards if card is not None]


def _coerce_meta(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = clean_text(value)
    return cleaned or None


def _batch_from_value(parsed: Any, strategy: str) -> ExtractedBatch | None:
    """Build a batch from a decoded array of cards or a ``flashcards`` object."""
    if isinstance(parsed, list):
        cards = _coerce_cards(parsed)
        return ExtractedBatch(flashcards=cards, strategy=strategy) if cards else None

    if isinstance(parsed, dict) and isinstance(parsed.get("flashcards"), list):
        cards = _coerce_cards(parsed["flashcards"])
        if not cards:
            return None
        return ExtractedBatch(
            title=_coerce_meta(parsed.get("title")),
            author=_coerce_meta(parsed.get("author")),
            language=_coerce_meta(parsed.get("language")),
            flashcards=cards,
            strategy=strategy,
        )
    return None


# ------------------------------------------------------------------
# Strategies
# ------------------------------------------------------------------


def fenced_json(text: str) -> ExtractedBatch | None:
    """Parse the first fenced block, then the whole text without fence markers."""
    candidates: list[str] = []
    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        candidates.append(fence_match.group(1).strip())
    candidates.append(_FENCE_MARKERS.sub("", text).strip())

    for body in candidates:
        if not body:
            continue
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            continue
        batch = _batch_from_value(parsed, "fenced_json")
        if batch is not None:
            return batch
    return None


def scattered_objects(text: str) -> ExtractedBatch | None:
    """Collect card objects embedded anywhere in free text.

    Every ``{`` is tried as the start of a JSON object.  A decoded card, or
    an object carrying a ``flashcards`` array, consumes its whole span and
    nothing nested inside it is visited again.  Anything else, including a
    span that does not decode, moves the scan on by one brace, so a
    malformed span never hides the objects after it.
    """
    decoder = json.JSONDecoder()
    cards: list[FlashcardDraft] = []
    meta: ExtractedBatch | None = None

    idx = text.find("{")
    while idx != -1:
        try:
            parsed, end = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            idx = text.find("{", idx + 1)
            continue

        wrapped = _batch_from_value(parsed, "scattered_objects")
        card = _coerce_card(parsed)
        if wrapped is not None:
            cards.extend(wrapped.flashcards)
            if meta is None:
                meta = wrapped
        elif card is not None:
            cards.append(card)
        else:
            idx = text.find("{", idx + 1)
            continue
        idx = text.find("{", end)

    if not cards:
        return None
    return ExtractedBatch(
        title=meta.title if meta else None,
        author=meta.author if meta else None,
        language=meta.language if meta else None,
        flashcards=cards,
        strategy="scattered_objects",
    )


def line_tagged(text: str) -> ExtractedBatch | None:
    """Pair ``Question:`` lines with the ``Answer:`` line that follows them."""
    cards: list[FlashcardDraft] = []
    question: str | None = None

    for line in text.splitlines():
        if _QUESTION_LINE.match(line):
            question = sanitize_question(line)
        elif _ANSWER_LINE.match(line) and question is not None:
            answer = sanitize_answer(line)
            if question and answer:
                cards.append(FlashcardDraft(question=question, answer=answer))
            question = None

    if not cards:
        return None
    return ExtractedBatch(flashcards=cards, strategy="line_tagged")


DEFAULT_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("fenced_json", fenced_json),
    ("scattered_objects", scattered_objects),
    ("line_tagged", line_tagged),
)


# ------------------------------------------------------------------
# Service
# ------------------------------------------------------------------


class ResponseExtractor:
    """Runs the extraction strategy chain over one completion.

    Parsing problems inside a strategy are never fatal; only exhausting the
    whole chain raises :class:`EmptyResultError`, after logging the raw
    completion so it can be inspected offline.
    """

    def __init__(
        self,
        strategies: tuple[tuple[str, Strategy], ...] = DEFAULT_STRATEGIES,
    ) -> None:
        self._strategies = strategies
        self._logger = get_logger(__name__)

    @property
    def strategy_names(self) -> list[str]:
        return [name for name, _ in self._strategies]

    def extract(self, raw_text: str, requested_title: str | None = None) -> ExtractedBatch:
        """Return the first non-empty batch produced by the strategy chain.

        Parameters
        ----------
        raw_text:
            The completion text exactly as the provider returned it.
        requested_title:
            The title the caller asked about; only used for diagnostics.

        Raises
        ------
        InvalidInputError
            If *raw_text* is not a string.
        EmptyResultError
            If no strategy recovered a usable flashcard.
        """
        if not isinstance(raw_text, str):
            raise InvalidInputError(
                message=f"completion must be a string, got {type(raw_text).__name__}"
            )

        for name, strategy in self._strategies:
            batch = strategy(raw_text)
            if batch is not None and batch.flashcards:
                self._logger.info(
                    "flashcards_extracted",
                    strategy=name,
                    count=len(batch.flashcards),
                    has_metadata=batch.title is not None,
                )
                return batch
            self._logger.debug("extraction_strategy_failed", strategy=name)

        self._logger.error(
            "extraction_failed",
            requested_title=requested_title,
            strategies=self.strategy_names,
            raw_completion=raw_text,
        )
        raise EmptyResultError(
            message=(
                "No flashcards could be extracted from the completion "
                f"(tried {', '.join(self.strategy_names)})"
            )
        )
