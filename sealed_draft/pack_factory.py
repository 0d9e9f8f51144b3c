from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from sealed_draft.cards import Card
from sealed_draft.state import Pack, RoundState

logger = logging.getLogger(__name__)

PACK_SIZE = 12
PACKS_PER_ROUND = 6


def _sample_without_replacement(rng: np.random.Generator, pool: Sequence[Card], k: int) -> List[Card]:
    if k <= 0 or not pool:
        return []
    k = min(k, len(pool))
    idx = rng.choice(len(pool), size=k, replace=False)
    return [pool[int(i)] for i in idx]


def create_pack(
    pool: Sequence[Card],
    size: int = PACK_SIZE,
    rng: Optional[np.random.Generator] = None,
) -> List[Card]:
    """
    Draw `size` distinct pool entries for one pack.
    A pool with fewer than `size` entries yields a short pack holding all of them
    in random order; the draft still runs, packs just empty early.
    """
    rng = rng if rng is not None else np.random.default_rng()
    if len(pool) < size:
        logger.debug("short pack: pool has %d cards, pack size is %d", len(pool), size)
    return _sample_without_replacement(rng, pool, size)


def create_round(
    round_number: int,
    pool: Sequence[Card],
    rng: Optional[np.random.Generator] = None,
    pack_size: int = PACK_SIZE,
) -> RoundState:
    """
    Build a round of PACKS_PER_ROUND packs. Each pack is an independent draw from
    the full pool, so a card may show up in several packs of the same round.
    """
    rng = rng if rng is not None else np.random.default_rng()
    packs = [
        Pack(id=f"R{round_number}P{i}", cards=create_pack(pool, pack_size, rng=rng))
        for i in range(1, PACKS_PER_ROUND + 1)
    ]
    return RoundState(round_number=round_number, packs=packs, turn=1)


__all__ = ["create_pack", "create_round", "PACK_SIZE", "PACKS_PER_ROUND"]
