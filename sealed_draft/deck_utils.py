from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from sealed_draft.cards import Card
from sealed_draft.tally import collation_key

TYPE_ORDER = ["Character", "Action", "Song"]
SORT_OPTIONS = ("default", "cost-asc", "cost-desc", "name", "color")


@dataclass
class CardFilters:
    colors: List[str] = field(default_factory=list)
    costs: List[int] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    evasive_only: bool = False


def resolve_card_type(card: Card) -> str:
    """Normalize the card type into Character / Action / Song, passing other types through."""
    base = (card.type or "").strip()
    if not base:
        return "Other"
    for known in TYPE_ORDER:
        if base.lower() == known.lower():
            return known
    return base


def has_keyword(card: Card, keyword: str) -> bool:
    target = keyword.lower()
    return any(k.lower() == target for k in card.keyword_abilities)


def matches_filters(card: Card, filters: CardFilters | None = None) -> bool:
    filters = filters or CardFilters()
    if filters.colors and card.color.value not in filters.colors:
        return False
    cost = card.cost if card.cost is not None else -1
    if filters.costs and cost not in filters.costs:
        return False
    if filters.types and resolve_card_type(card) not in filters.types:
        return False
    if filters.evasive_only and not has_keyword(card, "Evasive"):
        return False
    return True


def filter_cards(cards: Sequence[Card], filters: CardFilters | None = None) -> List[Card]:
    return [c for c in cards if matches_filters(c, filters)]


def _sort_key(option: str) -> Callable[[Card], tuple]:
    def cost(card: Card) -> int:
        # cards without a cost go last
        return card.cost if card.cost is not None else sys.maxsize

    if option == "cost-desc":
        return lambda c: (-cost(c), collation_key(c.full_name))
    if option == "name":
        return lambda c: collation_key(c.full_name)
    if option == "color":
        return lambda c: (collation_key(c.color.value), cost(c), collation_key(c.full_name))
    return lambda c: (cost(c), collation_key(c.full_name))


def sort_cards(cards: Sequence[Card], option: str = "default") -> List[Card]:
    return sorted(cards, key=_sort_key(option if option in SORT_OPTIONS else "default"))


def group_cards_by_type(cards: Sequence[Card], option: str = "default") -> List[Dict]:
    """Group cards by type: Character, Action, Song first, remaining types alphabetically."""
    buckets: Dict[str, List[Card]] = {}
    for card in cards:
        buckets.setdefault(resolve_card_type(card), []).append(card)
    ordered = [t for t in TYPE_ORDER if t in buckets]
    ordered += sorted((t for t in buckets if t not in TYPE_ORDER), key=collation_key)
    return [{"type": t, "cards": sort_cards(buckets[t], option)} for t in ordered]


def build_display_groups(cards: Sequence[Card], filters: CardFilters | None = None, option: str = "default") -> Dict:
    filtered = filter_cards(cards, filters)
    return {"filtered_cards": filtered, "groups": group_cards_by_type(filtered, option)}


__all__ = [
    "CardFilters",
    "TYPE_ORDER",
    "SORT_OPTIONS",
    "resolve_card_type",
    "has_keyword",
    "matches_filters",
    "filter_cards",
    "sort_cards",
    "group_cards_by_type",
    "build_display_groups",
]
