import sys
from pathlib import Path
from typing import List

import numpy as np
import pytest

repo_root = Path(__file__).resolve().parents[1]
sys.path.append(str(repo_root))

from sealed_draft.cards import Card, Color, Rarity

COLORS = list(Color)
RARITIES = list(Rarity)


def make_card(i: int, **overrides) -> Card:
    fields = dict(
        id=i,
        full_name=f"Card {i:02d}",
        color=COLORS[i % len(COLORS)],
        cost=i % 8 + 1,
        rarity=RARITIES[i % len(RARITIES)],
    )
    fields.update(overrides)
    return Card(**fields)


def make_pool(n: int) -> List[Card]:
    return [make_card(i) for i in range(n)]


@pytest.fixture
def pool() -> List[Card]:
    return make_pool(50)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)
