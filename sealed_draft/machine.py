from __future__ import annotations

import copy
import logging
import warnings
from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np

from sealed_draft.cards import Card
from sealed_draft.exceptions import (
    DraftCompleteError,
    DraftError,
    InvalidPickIndex,
    NoUndoAvailable,
    RoundIntegrityWarning,
)
from sealed_draft.pack_factory import PACK_SIZE, PACKS_PER_ROUND, create_round
from sealed_draft.state import DraftState, PickEvent, RoundState

logger = logging.getLogger(__name__)

ROUNDS = 6
TURNS_PER_ROUND = 12
# share of idle-pack removals that strip a top-rarity card instead of a random one
RARITY_REMOVAL_RATE = 0.5


def active_pack_index(turn: int) -> int:
    """0-based index of the pack picked from on `turn` (1-based)."""
    return (turn - 1) % PACKS_PER_ROUND


class UndoManager:
    """Single-slot snapshot of the state before the last pick."""

    @staticmethod
    def capture(state: DraftState) -> DraftState:
        # the snapshot never carries its own buffer, so undo cannot chain
        return copy.deepcopy(replace(state, undo_buffer=None))

    @staticmethod
    def restore(state: DraftState) -> DraftState:
        if state.undo_buffer is None:
            raise NoUndoAvailable("nothing to undo")
        return copy.deepcopy(replace(state.undo_buffer, undo_buffer=None))


class DraftStateMachine:
    """
    Turn-indexed pick/remove protocol over ROUNDS rounds of PACKS_PER_ROUND packs.

    Every transition returns a new DraftState; the state passed in is never mutated.
    `rng` is only meant to be injected by tests; normal use draws from fresh OS entropy.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, pack_size: int = PACK_SIZE):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.pack_size = pack_size
        self.undo_manager = UndoManager()

    def _create_round(self, round_number: int, pool: Sequence[Card]) -> RoundState:
        return create_round(round_number, pool, rng=self.rng, pack_size=self.pack_size)

    def initialize(self, pool: Sequence[Card]) -> DraftState:
        master = list(pool)
        return DraftState(
            master_cards=master,
            rounds=[self._create_round(1, master)],
            current_round=1,
            current_turn=1,
        )

    def reset_draft(self, pool: Sequence[Card]) -> DraftState:
        return self.initialize(pool)

    # -------- removal policy --------

    def _rarest_index(self, cards: List[Card]) -> int:
        ranks = [c.rank for c in cards]
        top = max(ranks)
        candidates = [i for i, r in enumerate(ranks) if r == top]
        if len(candidates) == 1:
            return candidates[0]
        return int(self.rng.choice(candidates))

    def _removal_index(self, cards: List[Card]) -> int:
        if self.rng.random() < RARITY_REMOVAL_RATE:
            return int(self.rng.integers(len(cards)))
        return self._rarest_index(cards)

    # -------- transitions --------

    def pick(self, state: DraftState, card_index: int) -> DraftState:
        if state.is_complete:
            raise DraftCompleteError("draft is complete")
        rnd = state.active_round
        pack_index = active_pack_index(state.current_turn)
        if rnd is None:
            raise InvalidPickIndex("draft has no active round")
        active_cards = rnd.packs[pack_index].cards
        if not 0 <= card_index < len(active_cards):
            raise InvalidPickIndex(
                f"card index {card_index} out of range for pack {rnd.packs[pack_index].id} "
                f"({len(active_cards)} cards)"
            )

        new_state = copy.deepcopy(state)
        new_state.undo_buffer = self.undo_manager.capture(state)
        current = new_state.rounds[-1]

        picked = current.packs[pack_index].cards.pop(card_index)
        new_state.picks.append(picked)

        removed = 0
        for i, pack in enumerate(current.packs):
            if i == pack_index or not pack.cards:
                continue
            gone = pack.cards.pop(self._removal_index(pack.cards))
            pack.removed_log.append(gone.id)
            removed += 1

        new_state.log.append(
            PickEvent(
                round=new_state.current_round,
                turn=new_state.current_turn,
                pack_index=pack_index,
                picked=picked,
                removed_count=removed,
            )
        )

        if new_state.current_turn < TURNS_PER_ROUND:
            new_state.current_turn += 1
            current.turn = new_state.current_turn
            return new_state

        self._check_round_integrity(current)
        if new_state.current_round < ROUNDS:
            new_state.current_round += 1
            new_state.current_turn = 1
            new_state.rounds.append(self._create_round(new_state.current_round, new_state.master_cards))
        else:
            new_state.is_complete = True
        return new_state

    def _check_round_integrity(self, rnd: RoundState) -> None:
        leftover = {p.id: len(p.cards) for p in rnd.packs if p.cards}
        if not leftover:
            return
        msg = f"round {rnd.round_number} ended with cards left in packs: {leftover}"
        logger.warning(msg)
        warnings.warn(msg, RoundIntegrityWarning, stacklevel=3)

    def undo(self, state: DraftState) -> DraftState:
        """Return the pre-pick snapshot; raises NoUndoAvailable when there is none."""
        return self.undo_manager.restore(state)

    def reset_round(self, state: DraftState) -> DraftState:
        """
        Drop every pick made in the current round and redraw its packs.
        Earlier rounds, their picks and the round number are kept.
        A state without round history (an imported pick list) has nothing to
        redraw and raises DraftError.
        """
        if not state.rounds:
            raise DraftError("draft has no round history to reset")
        new_state = copy.deepcopy(replace(state, undo_buffer=None))
        start = next(
            (i for i, e in enumerate(new_state.log) if e.round == new_state.current_round),
            None,
        )
        if start is not None:
            del new_state.picks[start:]
            del new_state.log[start:]

        new_state.rounds[-1] = self._create_round(new_state.current_round, new_state.master_cards)
        new_state.current_turn = 1
        new_state.is_complete = False
        return new_state


__all__ = [
    "DraftStateMachine",
    "UndoManager",
    "active_pack_index",
    "ROUNDS",
    "TURNS_PER_ROUND",
    "RARITY_REMOVAL_RATE",
]
