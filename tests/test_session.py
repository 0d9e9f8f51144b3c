import threading
import time

import pytest

from sealed_draft.cards import Rarity
from sealed_draft.exceptions import InvalidPickIndex
from sealed_draft.policies import POLICY_MAP, rarest_policy, resolve_policy
from sealed_draft.session import DraftSession
from sealed_draft.storage import DraftStore

from conftest import make_card, make_pool


def test_session_autosaves_every_transition(tmp_path, pool, rng):
    store = DraftStore(tmp_path / "s.sqlite")
    session = DraftSession(pool, store=store, rng=rng)
    session.flush()
    assert store.load() == session.state

    session.pick(0)
    session.flush()
    assert store.load() == session.state
    session.undo()
    session.close()
    assert store.load().picks == []


class SlowStore:
    """Records saves after a delay, like a store on a slow disk."""

    def __init__(self, delay=0.3):
        self.delay = delay
        self.calls = []

    def save(self, state):
        time.sleep(self.delay)
        self.calls.append(("save", len(state.picks)))

    def clear(self):
        self.calls.append(("clear", None))


def test_pick_returns_before_save_finishes(pool, rng):
    store = SlowStore()
    session = DraftSession(pool, store=store, rng=rng)

    t0 = time.perf_counter()
    session.pick(0)
    elapsed = time.perf_counter() - t0

    assert elapsed < store.delay
    session.close()
    assert store.calls == [("save", 0), ("save", 1)]


def test_saves_land_in_transition_order(pool, rng):
    store = SlowStore(delay=0.01)
    session = DraftSession(pool, store=store, rng=rng)
    for _ in range(5):
        session.pick(0)
    session.undo()
    session.close()
    assert [n for _, n in store.calls] == [0, 1, 2, 3, 4, 5, 4]


def test_concurrent_transitions_leave_latest_state_saved(tmp_path, pool, rng):
    store = DraftStore(tmp_path / "s.sqlite")
    session = DraftSession(pool, store=store, rng=rng)
    threads = [threading.Thread(target=lambda: [session.pick(0) for _ in range(3)]) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    session.close()
    assert store.load() == session.state
    assert len(store.load().picks) == 12


def test_reset_after_finished_draft_clears_autosave(pool, rng):
    store = SlowStore(delay=0)
    session = DraftSession(pool, store=store, rng=rng)
    session.quick_sim()
    session.reset_draft()
    session.close()
    assert store.calls[-3:] == [("save", 72), ("clear", None), ("save", 0)]


def test_reset_mid_draft_keeps_autosave(pool, rng):
    store = SlowStore(delay=0)
    session = DraftSession(pool, store=store, rng=rng)
    session.pick(0)
    session.reset_draft()
    session.close()
    assert ("clear", None) not in store.calls


def test_session_without_autosave_writes_nothing(tmp_path, pool, rng):
    store = DraftStore(tmp_path / "s.sqlite")
    session = DraftSession(pool, store=store, rng=rng, autosave=False)
    session.pick(0)
    session.close()
    assert store.load() is None


def test_undo_reports_nothing_to_undo(pool, rng):
    session = DraftSession(pool, rng=rng)
    assert session.undo() is False
    session.pick(0)
    assert session.undo() is True
    assert session.undo() is False


def test_invalid_pick_propagates(pool, rng):
    session = DraftSession(pool, rng=rng)
    with pytest.raises(InvalidPickIndex):
        session.pick(50)
    assert session.view()["picks_count"] == 0


@pytest.mark.parametrize("name", sorted(POLICY_MAP))
def test_quick_sim_completes_with_every_policy(name, pool, rng):
    session = DraftSession(pool, rng=rng)
    session.quick_sim(resolve_policy(name))
    view = session.view()
    assert view["done"]
    assert view["picks_count"] == 72
    assert view["active_pack_index"] is None
    assert len(session.tally_text().splitlines()) >= 1


def test_quick_sim_recovers_from_bad_policy_choice(pool, rng):
    session = DraftSession(pool, rng=rng)
    session.quick_sim(lambda pack, picks, r: 99)
    assert session.state.is_complete


def test_quick_sim_stops_on_empty_pack(rng, caplog):
    # one-card pool: the active pack runs dry on the second turn
    session = DraftSession(make_pool(1), rng=rng)
    session.quick_sim()
    assert not session.state.is_complete
    assert len(session.state.picks) == 1
    assert "stopping quick sim" in caplog.text


def test_rarest_policy_prefers_rarity_then_pool_colors():
    pack = [make_card(i, rarity=Rarity.RARE) for i in (0, 6, 12)]  # all Amber
    assert rarest_policy(pack, [], None) == 0
    pack = [make_card(0, rarity=Rarity.RARE), make_card(1, rarity=Rarity.RARE)]
    assert rarest_policy(pack, [make_card(7)], None) == 1  # pool already has Amethyst
    pack = [make_card(1), make_card(8)]  # Amethyst/Uncommon vs Emerald/Special
    assert rarest_policy(pack, [], None) == 1


def test_concurrent_picks_do_not_lose_updates(pool, rng):
    session = DraftSession(pool, rng=rng)
    errors = []

    def worker():
        for _ in range(6):
            try:
                session.pick(0)
            except InvalidPickIndex as e:  # pragma: no cover
                errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(session.state.picks) == 24
    assert len(session.state.log) == 24


def test_view_trims_log(pool, rng):
    session = DraftSession(pool, rng=rng)
    for _ in range(5):
        session.pick(0)
    view = session.view(log_limit=2)
    assert [e["turn"] for e in view["log"]] == [4, 5]
    assert view["picks_count"] == 5
