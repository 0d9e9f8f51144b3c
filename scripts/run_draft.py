"""
Run a sealed draft in the terminal: 6 rounds x 12 turns, one pick per turn.

Usage example:
PYTHONPATH=. python scripts/run_draft.py --cards data/processed/setdata.cleaned.json --output data/processed/picks.txt
PYTHONPATH=. python scripts/run_draft.py --auto --policy rarest --output data/processed/picks.parquet
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(REPO_ROOT))

from sealed_draft.cards import Card, enrich_with_base_card, load_card_pool
from sealed_draft.config import get_settings
from sealed_draft.exceptions import DraftError, InvalidPickIndex
from sealed_draft.machine import TURNS_PER_ROUND
from sealed_draft.policies import POLICY_MAP, resolve_policy
from sealed_draft.session import DraftSession
from sealed_draft.storage import DraftStore
from sealed_draft.tally import format_canonical, tally, tally_frame

HELP = "commands: <n> pick card n | u undo | r reset round | d reset draft | s quick sim | q quit"


def describe(card: Card) -> str:
    extras = [card.color.value]
    if card.rarity is not None:
        extras.append(card.rarity.value)
    if card.cost is not None:
        extras.append(f"cost {card.cost}")
    return f"{card.full_name} ({', '.join(extras)})"


def print_turn(session: DraftSession) -> None:
    view = session.view(log_limit=1)
    print()
    print(f"Round {view['round']} | Turn {view['turn']}/{TURNS_PER_ROUND} | Pack {view['active_pack_index'] + 1}")
    print("Packs: " + "  ".join(f"{p['id']}={p['remaining']}" for p in view["packs"]))
    print(f"Picks so far: {view['picks_count']}")
    for e in view["log"]:
        print(f"Last: {e['picked']['fullName']} (removed {e['removedCounts']} from other packs)")
    for i, card in enumerate(session.active_pack(), 1):
        print(f"  [{i}] {describe(card)}")


def prompt_loop(session: DraftSession) -> bool:
    """Interactive picking; returns False if the user quit early."""
    print(HELP)
    while not session.state.is_complete:
        print_turn(session)
        s = input("> ").strip().lower()
        if s == "q":
            print("Quitting draft. Progress is saved.")
            return False
        if s == "u":
            print("Undo successful" if session.undo() else "Nothing to undo")
        elif s == "r":
            try:
                session.reset_round()
                print("Round reset")
            except DraftError as e:
                print(f"Cannot reset round: {e}")
        elif s == "d":
            session.reset_draft()
            print("Draft reset")
        elif s == "s":
            session.quick_sim()
            print("Quick sim complete!")
        elif s.isdigit():
            try:
                session.pick(int(s) - 1)
            except InvalidPickIndex as e:
                print(f"Invalid pick: {e}")
        else:
            print(HELP)
    return True


def write_output(picks: List[Card], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if out_path.suffix == ".parquet":
        tally_frame(picks).to_parquet(out_path, index=False)
    elif out_path.suffix == ".csv":
        tally_frame(picks).to_csv(out_path, index=False)
    else:
        out_path.write_text(format_canonical(tally(picks)) + "\n", encoding="utf-8")
    print(f"Saved tally to {out_path}")


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser()
    parser.add_argument("--cards", type=str, default=str(settings.cards_path), help="Cleaned card JSON or parquet")
    parser.add_argument("--db", type=str, default=str(settings.db_path), help="SQLite file for autosave")
    parser.add_argument("--resume", action="store_true", help="Continue the last saved draft")
    parser.add_argument("--auto", action="store_true", help="Let a policy make every pick")
    parser.add_argument("--policy", type=str, default="first", choices=sorted(POLICY_MAP), help="Policy for --auto")
    parser.add_argument("--output", type=str, default=None, help="Write the final tally (.txt, .csv or .parquet)")
    parser.add_argument("--save_as", type=str, default=None, help="Also store the finished draft under this name")
    args = parser.parse_args()

    store = DraftStore(args.db)
    catalog = load_card_pool(args.cards, include_duplicates=True)
    pool = [c for c in catalog if c.base_card is not False]
    print(f"Loaded {len(pool)} base cards ({len(catalog)} total)")

    state = None
    if args.resume:
        state = store.load()
        if state is None:
            print("No saved draft found, starting a new one")
        else:
            state = enrich_with_base_card(state, catalog)
            pool = state.master_cards
            print("Draft resumed!")

    session = DraftSession(pool, store=store, state=state)
    try:
        if args.auto:
            session.quick_sim(resolve_policy(args.policy))
        elif not prompt_loop(session):
            return
    finally:
        # saves run in the background; let the last one land before exiting
        session.close()

    if not session.state.is_complete:
        print("Draft stopped before completion (an active pack ran empty)")
    print()
    print(session.tally_text())
    if args.output:
        write_output(session.state.picks, Path(args.output))
    if args.save_as:
        draft_id = store.save_draft(args.save_as, session.state)
        print(f"Saved draft '{args.save_as}' with id {draft_id}")


if __name__ == "__main__":
    main()
