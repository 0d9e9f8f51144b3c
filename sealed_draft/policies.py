from __future__ import annotations

from typing import Callable, Dict, List

import numpy as np

from sealed_draft.cards import Card

# Policy signature: policy(pack_cards: List[Card], picks: List[Card], rng: np.random.Generator) -> int (index into pack_cards)
Policy = Callable[[List[Card], List[Card], np.random.Generator], int]


def first_card_policy(pack_cards: List[Card], picks: List[Card], rng: np.random.Generator) -> int:
    """Always take the first card; what the quick-sim button does."""
    return 0


def random_policy(pack_cards: List[Card], picks: List[Card], rng: np.random.Generator) -> int:
    """Pick a random card from the pack."""
    return int(rng.integers(len(pack_cards)))


def rarest_policy(pack_cards: List[Card], picks: List[Card], rng: np.random.Generator) -> int:
    """Take the highest-rarity card, preferring colors already in the pool on ties."""
    pool_colors: Dict[str, int] = {}
    for card in picks:
        pool_colors[card.color.value] = pool_colors.get(card.color.value, 0) + 1
    scored = [(c.rank, pool_colors.get(c.color.value, 0), -i) for i, c in enumerate(pack_cards)]
    best = max(scored)
    return -best[2]


POLICY_MAP: Dict[str, Policy] = {
    "first": first_card_policy,
    "random": random_policy,
    "rarest": rarest_policy,
}


def resolve_policy(name: str | None) -> Policy:
    return POLICY_MAP.get((name or "").lower(), first_card_policy)


__all__ = ["Policy", "POLICY_MAP", "first_card_policy", "random_policy", "rarest_policy", "resolve_policy"]
