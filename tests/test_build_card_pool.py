import json
import sys

import pandas as pd

from scripts.build_card_pool import UNKNOWN_RARITY_RANK, main, mark_base_cards, rarity_sort_rank
from sealed_draft.cards import Rarity, load_card_pool


def test_rarity_sort_rank():
    assert rarity_sort_rank("Rare") == Rarity.RARE.rank
    assert rarity_sort_rank(None) == Rarity.COMMON.rank
    assert rarity_sort_rank("") == Rarity.COMMON.rank
    assert rarity_sort_rank("Mystery") == UNKNOWN_RARITY_RANK


def test_mark_base_cards_keeps_lowest_rarity_printing():
    cards = pd.DataFrame(
        [
            {"fullName": "Elsa", "rarity": "Enchanted"},
            {"fullName": "Elsa", "rarity": "Legendary"},
            {"fullName": "Olaf", "rarity": "Mystery"},
            {"fullName": "Olaf", "rarity": None},
            {"fullName": "Anna", "rarity": "Common"},
            {"fullName": "Anna", "rarity": "Common"},
        ]
    )
    assert mark_base_cards(cards).tolist() == [False, True, False, True, True, False]


def test_main_writes_cleaned_json_and_parquet(tmp_path, monkeypatch, capsys):
    raw = {
        "setName": "Test",
        "cards": [
            {"id": 1, "fullName": "Elsa", "color": "Amethyst", "rarity": "Enchanted"},
            {"id": 2, "fullName": "Elsa", "color": "Amethyst", "rarity": "Legendary"},
            {"id": 3, "fullName": "Olaf", "color": "Amber", "rarity": "Common", "cost": 1},
            {"id": 4, "color": "Ruby"},
        ],
    }
    src = tmp_path / "raw.json"
    src.write_text(json.dumps(raw), encoding="utf-8")
    out = tmp_path / "clean" / "cards.json"
    monkeypatch.setattr(sys, "argv", ["build_card_pool.py", "--input", str(src), "--output", str(out), "--parquet"])

    main()

    cleaned = json.loads(out.read_text(encoding="utf-8"))
    assert cleaned["setName"] == "Test"
    assert [(c["id"], c["baseCard"]) for c in cleaned["cards"]] == [(1, False), (2, True), (3, True)]
    assert [c.id for c in load_card_pool(out)] == [2, 3]
    assert [c.id for c in load_card_pool(out.with_suffix(".parquet"))] == [2, 3]
    assert "duplicate groups found: 1" in capsys.readouterr().out
