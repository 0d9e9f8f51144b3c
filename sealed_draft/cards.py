from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Color(Enum):
    AMBER = "Amber"
    AMETHYST = "Amethyst"
    EMERALD = "Emerald"
    RUBY = "Ruby"
    SAPPHIRE = "Sapphire"
    STEEL = "Steel"


class Rarity(Enum):
    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    SUPER_RARE = "Super Rare"
    LEGENDARY = "Legendary"
    EPIC = "Epic"
    ICONIC = "Iconic"
    ENCHANTED = "Enchanted"
    SPECIAL = "Special"

    @property
    def rank(self) -> int:
        return RARITY_RANKS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Rarity"]:
        """Map a catalog label to a Rarity; unknown or missing labels become None."""
        if not value:
            return None
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


# low -> high; unranked cards sit at 0 below Common
RARITY_RANKS: Dict[Rarity, int] = {r: i for i, r in enumerate(Rarity, start=1)}
COLOR_NAMES = [c.value for c in Color]


def rarity_rank(rarity: Optional[Rarity]) -> int:
    return RARITY_RANKS.get(rarity, 0) if rarity is not None else 0


@dataclass(frozen=True)
class Card:
    id: Any
    full_name: str
    color: Color
    cost: Optional[int] = None
    rarity: Optional[Rarity] = None
    image: Optional[str] = None
    type: Optional[str] = None
    keyword_abilities: Tuple[str, ...] = ()
    base_card: Optional[bool] = None

    @property
    def rank(self) -> int:
        return rarity_rank(self.rarity)

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Card":
        """
        Build a Card from a catalog record (camelCase keys as exported by the card source).
        Shape is trusted; only missing optional fields are defaulted.
        """
        images = _clean(rec.get("images")) or {}
        image = _clean(rec.get("image")) or (images.get("full") if isinstance(images, dict) else None)
        cost = _clean(rec.get("cost"))
        keywords = _clean(rec.get("keywordAbilities"))
        base_card = _clean(rec.get("baseCard"))
        return cls(
            id=_clean(rec.get("id")),
            full_name=str(rec.get("fullName", "")),
            color=Color(rec.get("color")),
            cost=int(cost) if cost is not None else None,
            rarity=Rarity.parse(_clean(rec.get("rarity"))),
            image=image,
            type=_clean(rec.get("type")),
            keyword_abilities=tuple(str(k) for k in keywords) if keywords is not None else (),
            base_card=bool(base_card) if base_card is not None else None,
        )

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "id": self.id,
            "fullName": self.full_name,
            "color": self.color.value,
        }
        if self.cost is not None:
            rec["cost"] = self.cost
        if self.rarity is not None:
            rec["rarity"] = self.rarity.value
        if self.image is not None:
            rec["images"] = {"full": self.image}
        if self.type is not None:
            rec["type"] = self.type
        if self.keyword_abilities:
            rec["keywordAbilities"] = list(self.keyword_abilities)
        if self.base_card is not None:
            rec["baseCard"] = self.base_card
        return rec


def _clean(value: Any) -> Any:
    # parquet round-trips give NaN for missing scalars and ndarrays for lists
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def _records_from_json(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        cards = data.get("cards")
    else:
        cards = data
    if not isinstance(cards, list):
        raise ValueError('card data must be a list or an object with a "cards" array')
    return cards


def cards_from_records(records: Iterable[Dict[str, Any]], include_duplicates: bool = False) -> List[Card]:
    cards = [Card.from_record(r) for r in records]
    if include_duplicates:
        return cards
    # baseCard == False marks an alternate printing; missing means base
    return [c for c in cards if c.base_card is not False]


def parse_card_pool(text: str, include_duplicates: bool = False) -> List[Card]:
    """Parse pasted JSON card data."""
    return cards_from_records(_records_from_json(json.loads(text)), include_duplicates=include_duplicates)


def load_card_pool(path: Path | str, include_duplicates: bool = False) -> List[Card]:
    """
    Load the master card pool from a cleaned set file.
      - .parquet files are read with pandas (one row per card)
      - anything else is read as JSON ({"cards": [...]} or a bare list)
    Duplicate printings (baseCard == False) are dropped unless include_duplicates.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{path} does not exist. run scripts/build_card_pool.py first.")
    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
        records = df.to_dict(orient="records")
    else:
        records = _records_from_json(json.loads(path.read_text(encoding="utf-8")))
    cards = cards_from_records(records, include_duplicates=include_duplicates)
    logger.info("loaded %d cards from %s (%d records)", len(cards), path, len(records))
    return cards


def enrich_with_base_card(state, all_cards: List[Card]):
    """
    Re-attach base_card flags from the full catalog to a resumed DraftState.
    Lookup is by id; cards not in the catalog keep their flag or default to True.
    """
    lookup = {c.id: c for c in all_cards}

    def enrich(card: Card) -> Card:
        master = lookup.get(card.id)
        if master is not None and master.base_card is not None:
            return replace(card, base_card=master.base_card)
        if card.base_card is not None:
            return card
        return replace(card, base_card=True)

    rounds = [
        replace(rnd, packs=[replace(p, cards=[enrich(c) for c in p.cards]) for p in rnd.packs])
        for rnd in state.rounds
    ]
    return replace(
        state,
        master_cards=[enrich(c) for c in state.master_cards],
        picks=[enrich(c) for c in state.picks],
        rounds=rounds,
        log=[replace(e, picked=enrich(e.picked)) for e in state.log],
        undo_buffer=enrich_with_base_card(state.undo_buffer, all_cards) if state.undo_buffer else None,
    )


__all__ = [
    "Card",
    "Color",
    "Rarity",
    "COLOR_NAMES",
    "RARITY_RANKS",
    "rarity_rank",
    "cards_from_records",
    "parse_card_pool",
    "load_card_pool",
    "enrich_with_base_card",
]
