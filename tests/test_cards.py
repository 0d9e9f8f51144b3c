import json

import pandas as pd
import pytest

from sealed_draft.cards import (
    Card,
    Color,
    Rarity,
    enrich_with_base_card,
    load_card_pool,
    parse_card_pool,
    rarity_rank,
)
from sealed_draft.machine import DraftStateMachine

RECORDS = [
    {
        "id": 101,
        "fullName": "Stitch - Rock Star",
        "color": "Amber",
        "cost": 6,
        "rarity": "Super Rare",
        "type": "Character",
        "keywordAbilities": ["Shift"],
        "images": {"full": "https://example.invalid/101.png"},
        "baseCard": True,
    },
    {"id": 102, "fullName": "Stitch - Rock Star", "color": "Amber", "cost": 6, "rarity": "Enchanted", "baseCard": False},
    {"id": 103, "fullName": "Fire the Cannons!", "color": "Steel", "cost": 1, "rarity": "Mystery Foil"},
]


def test_rarity_ranks_are_ordered():
    ranks = [r.rank for r in Rarity]
    assert ranks == list(range(1, 10))
    assert Rarity.SPECIAL.rank > Rarity.ENCHANTED.rank > Rarity.COMMON.rank
    assert rarity_rank(None) == 0


def test_unknown_rarity_ranks_below_common():
    card = Card.from_record(RECORDS[2])
    assert card.rarity is None
    assert card.rank == 0 < Rarity.COMMON.rank


def test_from_record_reads_catalog_fields():
    card = Card.from_record(RECORDS[0])
    assert card.full_name == "Stitch - Rock Star"
    assert card.color is Color.AMBER
    assert card.rarity is Rarity.SUPER_RARE
    assert card.image == "https://example.invalid/101.png"
    assert card.keyword_abilities == ("Shift",)
    assert Card.from_record(card.to_record()) == card


def test_unknown_color_is_rejected():
    with pytest.raises(ValueError):
        Card.from_record({"id": 1, "fullName": "X", "color": "Purple"})


def test_parse_card_pool_drops_alternate_printings():
    text = json.dumps({"cards": RECORDS})
    assert [c.id for c in parse_card_pool(text)] == [101, 103]
    assert [c.id for c in parse_card_pool(text, include_duplicates=True)] == [101, 102, 103]
    # a bare list works too
    assert len(parse_card_pool(json.dumps(RECORDS))) == 2


def test_parse_card_pool_rejects_other_shapes():
    with pytest.raises(ValueError):
        parse_card_pool(json.dumps({"data": []}))


def test_load_json_and_parquet(tmp_path):
    json_path = tmp_path / "cards.json"
    json_path.write_text(json.dumps({"cards": RECORDS}), encoding="utf-8")
    from_json = load_card_pool(json_path)

    pq_path = tmp_path / "cards.parquet"
    pd.DataFrame(RECORDS).drop(columns=["images"]).to_parquet(pq_path, index=False)
    from_parquet = load_card_pool(pq_path)

    assert [c.id for c in from_parquet] == [c.id for c in from_json]
    stitch = from_parquet[0]
    assert stitch.cost == 6
    assert stitch.keyword_abilities == ("Shift",)
    assert from_parquet[1].keyword_abilities == ()


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_card_pool(tmp_path / "nope.json")


def test_enrich_with_base_card_restores_flags(rng):
    catalog = [Card.from_record(r) for r in RECORDS]
    stripped = [Card(id=c.id, full_name=c.full_name, color=c.color, rarity=c.rarity) for c in catalog]
    stripped.append(Card(id=999, full_name="Unknown", color=Color.RUBY))
    state = DraftStateMachine(rng=rng).initialize(stripped)

    enriched = enrich_with_base_card(state, catalog)

    flags = {c.id: c.base_card for c in enriched.master_cards}
    assert flags == {101: True, 102: False, 103: True, 999: True}
    for pack in enriched.rounds[0].packs:
        assert all(c.base_card is not None for c in pack.cards)
