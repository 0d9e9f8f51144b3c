import sqlite3

import pytest

from sealed_draft.exceptions import PersistenceFailure
from sealed_draft.machine import DraftStateMachine
from sealed_draft.storage import CURRENT_DRAFT_NAME, DraftStore

from conftest import make_pool


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "drafts.sqlite")


@pytest.fixture
def state(pool, rng):
    sm = DraftStateMachine(rng=rng)
    s = sm.initialize(pool)
    for _ in range(3):
        s = sm.pick(s, 1)
    return s


def test_load_empty_store(store):
    assert store.load() is None


def test_save_load_clear(store, state):
    store.save(state)
    assert store.load() == state

    store.save(state)
    drafts = store.list_drafts()
    assert [d.name for d in drafts] == [CURRENT_DRAFT_NAME]

    store.clear()
    assert store.load() is None


def test_autosave_row_is_overwritten(store, state, rng):
    store.save(state)
    later = DraftStateMachine(rng=rng).pick(state, 0)
    store.save(later)
    assert store.load() == later
    assert len(store.list_drafts()) == 1


def test_best_effort_calls_never_raise(tmp_path, state, caplog):
    # a directory where the database file should be
    broken = DraftStore(tmp_path)
    broken.save(state)
    assert broken.load() is None
    broken.clear()
    assert "failed to save draft state" in caplog.text


def test_explicit_calls_raise(tmp_path, state):
    with pytest.raises(PersistenceFailure):
        DraftStore(tmp_path).save_draft("x", state)


def test_named_drafts(store, state):
    draft_id = store.save_draft("Friday", state)
    saved = store.get_draft(draft_id)
    assert saved.name == "Friday"
    assert saved.state() == state

    store.rename_draft(draft_id, "Saturday")
    assert store.get_draft(draft_id).name == "Saturday"

    store.delete_draft(draft_id)
    assert store.get_draft(draft_id) is None
    assert store.list_drafts() == []


def test_decks(store):
    cards = make_pool(5)
    linked = store.save_deck("linked", cards, draft_id=7)
    loose = store.save_deck("loose", cards[:2])

    deck = store.get_deck(linked)
    assert deck.total_cards == 5
    assert deck.draft_id == 7
    assert deck.cards() == cards

    store.rename_deck(loose, "renamed")
    store.update_deck_cards(loose, cards[:1])
    deck = store.get_deck(loose)
    assert (deck.name, deck.total_cards) == ("renamed", 1)

    assert store.delete_unassigned_decks() == 1
    assert [d.id for d in store.list_decks()] == [linked]

    store.delete_deck(linked)
    assert store.list_decks() == []


def test_export_import_round_trip(tmp_path, store, state):
    store.save_draft("kept", state)
    store.save_deck("deck", make_pool(3))
    exported = store.export_database(tmp_path / "backup.sqlite")

    other = DraftStore(tmp_path / "other.sqlite")
    other.save_draft("replaced", state)
    other.import_database(exported)

    assert [d.name for d in other.list_drafts()] == ["kept"]
    assert [d.name for d in other.list_decks()] == ["deck"]


def test_import_rejects_foreign_database(tmp_path, store):
    foreign = tmp_path / "foreign.sqlite"
    with sqlite3.connect(foreign) as con:
        con.execute("CREATE TABLE saved_drafts (id INTEGER)")
    con.close()
    with pytest.raises(PersistenceFailure, match="saved_decks"):
        store.import_database(foreign)

    junk = tmp_path / "junk.sqlite"
    junk.write_bytes(b"this is not a database\n" * 64)
    with pytest.raises(PersistenceFailure):
        store.import_database(junk)

    with pytest.raises(PersistenceFailure):
        store.import_database(tmp_path / "missing.sqlite")


def test_old_deck_table_gains_draft_id(tmp_path):
    path = tmp_path / "old.sqlite"
    con = sqlite3.connect(path)
    con.execute(
        "CREATE TABLE saved_decks (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, "
        "created_at TEXT NOT NULL, total_cards INTEGER NOT NULL, cards_json TEXT NOT NULL)"
    )
    con.execute(
        "INSERT INTO saved_decks (name, created_at, total_cards, cards_json) VALUES ('old', '2024-01-01', 0, '[]')"
    )
    con.commit()
    con.close()

    decks = DraftStore(path).list_decks()
    assert [(d.name, d.draft_id) for d in decks] == [("old", None)]
