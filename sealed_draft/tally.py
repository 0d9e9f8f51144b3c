from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from sealed_draft.cards import Card, Color


@dataclass(frozen=True)
class TallyEntry:
    count: int
    full_name: str
    color: Color

    def to_dict(self) -> Dict:
        return {"count": self.count, "fullName": self.full_name, "color": self.color.value}


def collation_key(name: str) -> Tuple[str, str]:
    """
    Locale-style sort key: accents and case are ignored at the first level,
    the raw string breaks remaining ties so the order stays total.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name


def tally(picks: Iterable[Card]) -> List[TallyEntry]:
    """Count picks per (full_name, color); most picked first, then by name."""
    counts: Dict[Tuple[str, Color], int] = {}
    for card in picks:
        key = (card.full_name, card.color)
        counts[key] = counts.get(key, 0) + 1
    entries = [TallyEntry(count=n, full_name=name, color=color) for (name, color), n in counts.items()]
    # color keeps same-name entries of different inks in a fixed order
    entries.sort(key=lambda e: (-e.count, collation_key(e.full_name), e.color.value))
    return entries


def format_canonical(entries: Iterable[TallyEntry]) -> str:
    return "\n".join(f"{e.count} {e.full_name}" for e in entries)


def tally_frame(picks: Iterable[Card]) -> pd.DataFrame:
    rows = [e.to_dict() for e in tally(picks)]
    return pd.DataFrame(rows, columns=["count", "fullName", "color"])


__all__ = ["TallyEntry", "tally", "format_canonical", "tally_frame", "collation_key"]
