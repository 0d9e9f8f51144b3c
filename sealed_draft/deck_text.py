"""
Import of exported pick lists.

Accepted line shapes:
  3 Cinderella - Dream Come True                (current export)
  3 - Cinderella - Dream Come True - Sapphire   (legacy, with ink color)
  3 - Cinderella - Dream Come True              (legacy, without color)
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sealed_draft.cards import COLOR_NAMES, Card, Color
from sealed_draft.machine import ROUNDS, TURNS_PER_ROUND
from sealed_draft.state import DraftState

_LEGACY_RE = re.compile(r"^(\d+)\s+-\s+(.+)$")
_CANONICAL_RE = re.compile(r"^(\d+)\s+(.+)$")


@dataclass(frozen=True)
class DeckLine:
    count: int
    full_name: str
    color: Optional[Color] = None


def _parse_line(line: str) -> Optional[DeckLine]:
    m = _LEGACY_RE.match(line)
    if m:
        count = int(m.group(1))
        parts = [p.strip() for p in m.group(2).split(" - ")]
        if count <= 0:
            return None
        if len(parts) >= 2 and parts[-1] in COLOR_NAMES:
            name = " - ".join(parts[:-1])
            return DeckLine(count, name, Color(parts[-1])) if name else None
        name = " - ".join(parts).strip()
        return DeckLine(count, name) if name else None

    m = _CANONICAL_RE.match(line)
    if m:
        count = int(m.group(1))
        name = m.group(2).strip()
        if count > 0 and name:
            return DeckLine(count, name)
    return None


def parse_deck_text(text: str) -> List[DeckLine]:
    parsed: List[DeckLine] = []
    if not text:
        return parsed
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        entry = _parse_line(line)
        if entry is not None:
            parsed.append(entry)
    return parsed


def match_deck_lines(lines: Sequence[DeckLine], pool: Sequence[Card]) -> Tuple[List[Card], List[str]]:
    """
    Resolve parsed lines against the card pool.
    Lines with a color match on (name, color); otherwise the first card with that name wins.
    Returns (cards with each match repeated `count` times, descriptions of unmatched lines).
    """
    cards: List[Card] = []
    unmatched: List[str] = []
    for line in lines:
        if line.color is not None:
            match = next((c for c in pool if c.full_name == line.full_name and c.color == line.color), None)
        else:
            match = next((c for c in pool if c.full_name == line.full_name), None)
        if match is None:
            suffix = f" - {line.color.value}" if line.color is not None else ""
            unmatched.append(f"{line.count}x {line.full_name}{suffix}")
            continue
        cards.extend([match] * line.count)
    return cards, unmatched


def imported_draft_state(pool: Sequence[Card], cards: Sequence[Card]) -> DraftState:
    """A finished draft whose picks are the imported cards; there is no pack history."""
    return DraftState(
        master_cards=list(pool),
        rounds=[],
        current_round=ROUNDS,
        current_turn=TURNS_PER_ROUND,
        picks=list(cards),
        log=[],
        is_complete=True,
    )


__all__ = ["DeckLine", "parse_deck_text", "match_deck_lines", "imported_draft_state"]
