"""
Build the cleaned card pool from a raw set export.

Cards sharing a fullName are alternate printings (enchanted, promo, ...). The lowest
rarity printing of each name is kept as the base card (baseCard: true) and the others
are flagged baseCard: false so the draft pool samples each card once.

Usage example:
PYTHONPATH=. python scripts/build_card_pool.py --input data/raw/setdata.10.json
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(REPO_ROOT))

from sealed_draft.cards import Rarity
from sealed_draft.config import DATA_PROCESSED, DATA_RAW

UNKNOWN_RARITY_RANK = 999


def rarity_sort_rank(value) -> int:
    # no rarity counts as Common; unrecognised labels go last
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return Rarity.COMMON.rank
    rarity = Rarity.parse(value)
    return rarity.rank if rarity is not None else UNKNOWN_RARITY_RANK


def mark_base_cards(cards: pd.DataFrame) -> pd.Series:
    """Boolean Series (aligned with `cards`) that is True for the base printing of each fullName."""
    df = pd.DataFrame(
        {
            "fullName": cards["fullName"],
            "rank": cards.get("rarity", pd.Series([None] * len(cards), index=cards.index)).map(rarity_sort_rank),
            "order": range(len(cards)),
        },
        index=cards.index,
    )
    ordered = df.sort_values(["fullName", "rank", "order"], kind="mergesort")
    base = ~ordered.duplicated(subset="fullName", keep="first")
    return base.reindex(cards.index)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--input", type=str, default=str(DATA_RAW / "setdata.json"))
    parser.add_argument("--output", type=str, default=str(DATA_PROCESSED / "setdata.cleaned.json"))
    parser.add_argument("--parquet", action="store_true", help="Also write a .parquet copy next to the JSON output")
    args = parser.parse_args()

    in_path = Path(args.input)
    data = json.loads(in_path.read_text(encoding="utf-8"))
    if not isinstance(data.get("cards"), list):
        raise ValueError("Invalid JSON format: missing cards array")

    records = [c for c in data["cards"] if c.get("fullName")]
    skipped = len(data["cards"]) - len(records)
    if skipped:
        print(f"skipped {skipped} cards without fullName")

    cards = pd.DataFrame(records)
    base = mark_base_cards(cards)
    for rec, flag in zip(records, base.tolist()):
        rec["baseCard"] = bool(flag)

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps({**data, "cards": records}, indent=2), encoding="utf-8")

    dup_groups = int((cards["fullName"].value_counts() > 1).sum())
    print(f"total cards: {len(records)}")
    print(f"unique fullNames: {cards['fullName'].nunique()}")
    print(f"duplicate groups found: {dup_groups}")
    print("wrote", out_path)

    if args.parquet:
        pq_path = out_path.with_suffix(".parquet")
        cols = ["id", "fullName", "color", "cost", "rarity", "type", "keywordAbilities", "baseCard"]
        frame = pd.DataFrame(records)
        frame[[c for c in cols if c in frame.columns]].to_parquet(pq_path, index=False)
        print("wrote", pq_path)


if __name__ == "__main__":
    main()
