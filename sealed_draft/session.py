from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

import numpy as np

from sealed_draft.cards import Card
from sealed_draft.exceptions import NoUndoAvailable
from sealed_draft.machine import DraftStateMachine, active_pack_index
from sealed_draft.policies import Policy, first_card_policy
from sealed_draft.state import DraftState
from sealed_draft.storage import DraftStore
from sealed_draft.tally import format_canonical, tally

logger = logging.getLogger(__name__)


class DraftSession:
    """
    One player's draft as seen by a host (CLI or HTTP server).

    The state machine itself does no locking; the session serialises transitions with
    a per-draft lock so two concurrent requests cannot both build on the same snapshot.
    With autosave on, the state produced by each transition is queued, under the same
    lock, on a single background writer: transitions return without waiting for the
    disk, and writes land in transition order. Store failures are logged by the store.
    """

    def __init__(
        self,
        pool: Sequence[Card],
        store: Optional[DraftStore] = None,
        rng: Optional[np.random.Generator] = None,
        state: Optional[DraftState] = None,
        autosave: bool = True,
    ):
        self.session_id = str(uuid.uuid4())
        self.pool = list(pool)
        self.store = store
        self.autosave = autosave
        self.machine = DraftStateMachine(rng=rng)
        self._lock = threading.Lock()
        self._writer: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        with self._lock:
            self.state = state if state is not None else self.machine.initialize(self.pool)
            self._persist(self.state)

    # -------- persistence --------

    def _submit(self, fn, *args) -> None:
        # caller holds self._lock
        if self._writer is None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"draft-save-{self.session_id[:8]}")
        self._pending = self._writer.submit(fn, *args)

    def _persist(self, state: DraftState) -> None:
        if self.autosave and self.store is not None:
            self._submit(self.store.save, state)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every queued save has been written."""
        pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    def close(self) -> None:
        """Write out queued saves and stop the writer thread."""
        with self._lock:
            writer, self._writer = self._writer, None
        if writer is not None:
            writer.shutdown(wait=True)

    # -------- transitions --------

    def active_pack(self) -> List[Card]:
        rnd = self.state.active_round
        if self.state.is_complete or rnd is None:
            return []
        return rnd.packs[active_pack_index(self.state.current_turn)].cards

    def pick(self, card_index: int) -> DraftState:
        with self._lock:
            self.state = self.machine.pick(self.state, card_index)
            self._persist(self.state)
            return self.state

    def undo(self) -> bool:
        """Restore the state before the last pick. False when there was nothing to undo."""
        with self._lock:
            try:
                self.state = self.machine.undo(self.state)
            except NoUndoAvailable:
                return False
            self._persist(self.state)
            return True

    def reset_round(self) -> DraftState:
        with self._lock:
            self.state = self.machine.reset_round(self.state)
            self._persist(self.state)
            return self.state

    def reset_draft(self) -> DraftState:
        with self._lock:
            finished = self.state.is_complete
            self.state = self.machine.reset_draft(self.pool)
            if finished and self.autosave and self.store is not None:
                # a finished draft is not resumed; drop its autosave before the new one lands
                self._submit(self.store.clear)
            self._persist(self.state)
            return self.state

    def quick_sim(self, policy: Policy = first_card_policy) -> DraftState:
        """Let `policy` pick until the draft completes or the active pack runs dry."""
        with self._lock:
            state = self.state
            while not state.is_complete:
                pack = state.active_round.packs[active_pack_index(state.current_turn)].cards
                if not pack:
                    logger.error(
                        "active pack is empty at round %d turn %d, stopping quick sim",
                        state.current_round,
                        state.current_turn,
                    )
                    break
                choice = policy(pack, state.picks, self.machine.rng)
                # if invalid choice, fallback to random
                if not 0 <= choice < len(pack):
                    choice = int(self.machine.rng.integers(len(pack)))
                state = self.machine.pick(state, choice)
            self.state = state
            self._persist(self.state)
            return self.state

    def tally_text(self) -> str:
        return format_canonical(tally(self.state.picks))

    def view(self, log_limit: Optional[int] = None) -> Dict:
        """Read-only snapshot for rendering: active pack, pack sizes, pick log."""
        state = self.state
        rnd = state.active_round
        events = state.log if log_limit is None else state.log[-log_limit:]
        return {
            "session_id": self.session_id,
            "round": state.current_round,
            "turn": state.current_turn,
            "active_pack_index": active_pack_index(state.current_turn) if not state.is_complete else None,
            "active_pack": [c.to_record() for c in self.active_pack()],
            "packs": [{"id": p.id, "remaining": len(p.cards)} for p in rnd.packs] if rnd else [],
            "picks_count": len(state.picks),
            "log": [e.to_dict() for e in events],
            "done": state.is_complete,
            "can_undo": state.undo_buffer is not None,
        }


__all__ = ["DraftSession"]
