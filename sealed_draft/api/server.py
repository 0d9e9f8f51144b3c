from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from pydantic import BaseModel

from sealed_draft.cards import Card, load_card_pool, parse_card_pool, enrich_with_base_card
from sealed_draft.config import get_settings
from sealed_draft.deck_text import imported_draft_state, match_deck_lines, parse_deck_text
from sealed_draft.deck_utils import CardFilters, build_display_groups
from sealed_draft.exceptions import DraftError, InvalidPickIndex, PersistenceFailure
from sealed_draft.policies import resolve_policy
from sealed_draft.session import DraftSession
from sealed_draft.storage import DraftStore
from sealed_draft.tally import format_canonical, tally

logger = logging.getLogger(__name__)

app = FastAPI()

INDEX_HTML = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Sealed Draft</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 24px; }
    #cards button { margin: 4px; padding: 8px 12px; }
    pre { background: #f7f7f7; padding: 12px; }
    .section { margin-top: 16px; padding: 12px; border: 1px solid #ddd; border-radius: 6px; }
    .row { display: flex; gap: 16px; align-items: center; flex-wrap: wrap; }
    button { cursor: pointer; }
  </style>
</head>
<body>
  <h1>Sealed Draft</h1>
  <div class="section">
    <div class="row">
      <button onclick="startDraft()">New Draft</button>
      <button onclick="resumeDraft()">Resume</button>
      <button onclick="call('/undo')">Undo</button>
      <button onclick="confirm('Reset the current round?') && call('/reset_round')">Reset Round</button>
      <button onclick="confirm('Reset the entire draft?') && call('/reset_draft')">Reset Draft</button>
      <button onclick="call('/quick_sim', {policy: 'first'})">Quick Sim</button>
    </div>
    <div id="status"></div>
    <div id="notice"></div>
    <div id="packs"></div>
    <div id="cards"></div>
  </div>
  <div class="section">
    <h3>Results</h3>
    <button onclick="copyTally()">Copy All Lines</button>
    <pre id="tally"></pre>
    <h3>Turn log</h3>
    <pre id="log"></pre>
  </div>
  <div class="section">
    <h3>Backup</h3>
    <div class="row">
      <a href="/export">Export database</a>
      <input type="file" id="importFile" accept=".sqlite,.db" />
      <button onclick="importDb()">Import database</button>
    </div>
  </div>
<script>
let sessionId = null;

async function post(url, body) {
  const res = await fetch(url, {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    body: JSON.stringify(body || {})
  });
  return res.json();
}
async function startDraft() {
  const data = await post("/start_draft", {});
  sessionId = data.session_id;
  render(data);
}
async function resumeDraft() {
  const data = await post("/resume_draft", {});
  if (!data.session_id) { document.getElementById("notice").innerText = "No saved draft found"; return; }
  sessionId = data.session_id;
  render(data);
}
async function call(url, extra) {
  if (!sessionId) return;
  const data = await post(url, Object.assign({session_id: sessionId}, extra || {}));
  document.getElementById("notice").innerText = data.message || "";
  render(data.state || data);
}
async function importDb() {
  const file = document.getElementById("importFile").files[0];
  if (!file || !confirm("Replace all saved drafts and decks?")) return;
  const res = await fetch("/import", {method: "POST", body: await file.arrayBuffer()});
  const data = await res.json();
  document.getElementById("notice").innerText = data.detail || data.message || "";
}
async function pickCard(idx) {
  await call("/pick", {card_index: idx});
}
async function render(data) {
  document.getElementById("status").innerText =
    data.done ? "Draft complete" : `Round ${data.round} / Turn ${data.turn} / Pack ${data.active_pack_index + 1}`;
  document.getElementById("packs").innerText =
    (data.packs || []).map(p => `${p.id}: ${p.remaining}`).join("  ");
  const cardsDiv = document.getElementById("cards");
  cardsDiv.innerHTML = "";
  (data.active_pack || []).forEach((c, i) => {
    const btn = document.createElement("button");
    btn.innerText = `${c.fullName} (${c.color}${c.rarity ? ", " + c.rarity : ""})`;
    btn.onclick = () => pickCard(i);
    cardsDiv.appendChild(btn);
  });
  document.getElementById("log").innerText = (data.log || []).slice(-12).reverse()
    .map(e => `R${e.round} T${e.turn} P${e.packIndex + 1}: ${e.picked.fullName} (-${e.removedCounts})`).join("\\n");
  const res = await fetch(`/tally/${sessionId}`);
  const tallyData = await res.json();
  document.getElementById("tally").innerText = tallyData.text || "";
}
async function copyTally() {
  await navigator.clipboard.writeText(document.getElementById("tally").innerText);
}
</script>
</body>
</html>
"""


class StartDraftRequest(BaseModel):
    cards_json: Optional[str] = None  # pasted card data; default pool file otherwise


class SessionRequest(BaseModel):
    session_id: str


class PickRequest(BaseModel):
    session_id: str
    card_index: int


class QuickSimRequest(BaseModel):
    session_id: str
    policy: str = "first"  # first | random | rarest


class SaveDraftRequest(BaseModel):
    session_id: str
    name: str


class ImportDeckRequest(BaseModel):
    text: str
    name: str


class SaveDeckRequest(BaseModel):
    name: str
    card_ids: List[str | int]
    draft_id: Optional[int] = None


class DeckViewRequest(BaseModel):
    session_id: str
    colors: List[str] = []
    costs: List[int] = []
    types: List[str] = []
    evasive_only: bool = False
    sort: str = "default"  # default | cost-asc | cost-desc | name | color


class RenameRequest(BaseModel):
    name: str


class UpdateDeckRequest(BaseModel):
    name: Optional[str] = None
    card_ids: Optional[List[str | int]] = None


SESSIONS: Dict[str, DraftSession] = {}
_POOL: Optional[List[Card]] = None
_CATALOG: Optional[List[Card]] = None
_STORE: Optional[DraftStore] = None


def get_pool() -> List[Card]:
    global _POOL, _CATALOG
    if _POOL is None:
        path = get_settings().cards_path
        try:
            _CATALOG = load_card_pool(path, include_duplicates=True)
        except FileNotFoundError as e:
            raise HTTPException(status_code=503, detail=str(e))
        _POOL = [c for c in _CATALOG if c.base_card is not False]
    return _POOL


def get_store() -> DraftStore:
    global _STORE
    if _STORE is None:
        _STORE = DraftStore(get_settings().db_path)
    return _STORE


def _get_session(session_id: str) -> DraftSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return session


def _register(session: DraftSession) -> Dict:
    # the session autosaves on its own ordered writer; nothing to schedule here
    SESSIONS[session.session_id] = session
    return session.view()


def _cards_from_ids(card_ids: List[str | int]) -> List[Card]:
    lookup = {str(c.id): c for c in get_pool()}
    missing = [cid for cid in card_ids if str(cid) not in lookup]
    if missing:
        raise HTTPException(status_code=400, detail=f"unknown card ids: {missing[:5]}")
    return [lookup[str(cid)] for cid in card_ids]


@app.get("/", response_class=HTMLResponse)
def index():
    return INDEX_HTML


@app.post("/start_draft")
def start_draft(req: StartDraftRequest):
    if req.cards_json:
        try:
            pool = parse_card_pool(req.cards_json)
        except (ValueError, KeyError) as e:
            raise HTTPException(status_code=400, detail=f"failed to parse card data: {e}")
    else:
        pool = get_pool()
    return _register(DraftSession(pool, store=get_store()))


@app.post("/resume_draft")
def resume_draft():
    saved = get_store().load()
    if saved is None:
        return {"session_id": None, "message": "no saved draft found"}
    if _CATALOG is not None:
        saved = enrich_with_base_card(saved, _CATALOG)
    return _register(DraftSession(saved.master_cards, store=get_store(), state=saved))


@app.get("/state/{session_id}")
def get_state(session_id: str):
    return _get_session(session_id).view()


@app.post("/pick")
def pick_card(req: PickRequest):
    session = _get_session(req.session_id)
    try:
        session.pick(req.card_index)
    except InvalidPickIndex as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.view()


@app.post("/undo")
def undo(req: SessionRequest):
    session = _get_session(req.session_id)
    undone = session.undo()
    return {
        "undone": undone,
        "message": "undo successful" if undone else "nothing to undo",
        "state": session.view(),
    }


@app.post("/reset_round")
def reset_round(req: SessionRequest):
    session = _get_session(req.session_id)
    try:
        session.reset_round()
    except DraftError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.view()


@app.post("/reset_draft")
def reset_draft(req: SessionRequest):
    session = _get_session(req.session_id)
    session.reset_draft()
    return session.view()


@app.post("/quick_sim")
def quick_sim(req: QuickSimRequest):
    session = _get_session(req.session_id)
    session.quick_sim(resolve_policy(req.policy))
    return session.view()


@app.get("/tally/{session_id}")
def get_tally(session_id: str):
    session = _get_session(session_id)
    entries = tally(session.state.picks)
    return {"tally": [e.to_dict() for e in entries], "text": format_canonical(entries)}


@app.get("/tally/{session_id}/text", response_class=PlainTextResponse)
def get_tally_text(session_id: str):
    return _get_session(session_id).tally_text()


@app.post("/drafts")
def save_draft(req: SaveDraftRequest):
    session = _get_session(req.session_id)
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name required")
    try:
        draft_id = get_store().save_draft(name, session.state)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": draft_id, "name": name}


@app.get("/drafts")
def list_drafts():
    try:
        drafts = get_store().list_drafts()
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [{"id": d.id, "name": d.name, "created_at": d.created_at} for d in drafts]


@app.delete("/drafts/{draft_id}")
def delete_draft(draft_id: int):
    try:
        get_store().delete_draft(draft_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"deleted": draft_id}


@app.patch("/drafts/{draft_id}")
def rename_draft(draft_id: int, req: RenameRequest):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name required")
    store = get_store()
    try:
        if store.get_draft(draft_id) is None:
            raise HTTPException(status_code=404, detail="draft not found")
        store.rename_draft(draft_id, name)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": draft_id, "name": name}


@app.post("/import_deck")
def import_deck(req: ImportDeckRequest):
    """
    Import an exported pick list as a finished draft.
    Accepts "3 Name" lines and the older "3 - Name - Color" lines.
    """
    lines = parse_deck_text(req.text)
    if not lines:
        raise HTTPException(status_code=400, detail='no valid lines; expected "3 Name" or "3 - Name - Color"')
    pool = get_pool()
    cards, unmatched = match_deck_lines(lines, pool)
    if not cards:
        raise HTTPException(status_code=400, detail=f"none of {len(lines)} entries matched the card pool")
    try:
        draft_id = get_store().save_draft(req.name.strip() or "Imported Draft", imported_draft_state(pool, cards))
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": draft_id, "cards": len(cards), "unmatched": unmatched}


@app.post("/decks")
def save_deck(req: SaveDeckRequest):
    cards = _cards_from_ids(req.card_ids)
    try:
        deck_id = get_store().save_deck(req.name, cards, draft_id=req.draft_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": deck_id, "total_cards": len(cards)}


@app.get("/decks")
def list_decks():
    try:
        decks = get_store().list_decks()
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [
        {"id": d.id, "name": d.name, "created_at": d.created_at, "total_cards": d.total_cards, "draft_id": d.draft_id}
        for d in decks
    ]


@app.patch("/decks/{deck_id}")
def update_deck(deck_id: int, req: UpdateDeckRequest):
    """Rename a deck and/or replace its card list."""
    store = get_store()
    cards = _cards_from_ids(req.card_ids) if req.card_ids is not None else None
    try:
        if store.get_deck(deck_id) is None:
            raise HTTPException(status_code=404, detail="deck not found")
        if req.name is not None:
            if not req.name.strip():
                raise HTTPException(status_code=400, detail="name required")
            store.rename_deck(deck_id, req.name.strip())
        if cards is not None:
            store.update_deck_cards(deck_id, cards)
        deck = store.get_deck(deck_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": deck.id, "name": deck.name, "total_cards": deck.total_cards}


@app.delete("/decks/unassigned")
def delete_unassigned_decks():
    try:
        removed = get_store().delete_unassigned_decks()
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"deleted": removed}


@app.delete("/decks/{deck_id}")
def delete_deck(deck_id: int):
    try:
        get_store().delete_deck(deck_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"deleted": deck_id}


@app.get("/export")
def export_database(background_tasks: BackgroundTasks):
    """Download every saved draft and deck as one sqlite file."""
    tmp_dir = Path(tempfile.mkdtemp(prefix="sealed_draft_export_"))
    dest = tmp_dir / "sealed_draft_backup.sqlite"
    try:
        get_store().export_database(dest)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    background_tasks.add_task(shutil.rmtree, tmp_dir, ignore_errors=True)
    return FileResponse(dest, media_type="application/x-sqlite3", filename=dest.name)


@app.post("/import")
async def import_database(request: Request):
    """Replace all saved drafts and decks with an uploaded sqlite file (raw request body)."""
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="empty upload")
    with tempfile.TemporaryDirectory(prefix="sealed_draft_import_") as tmp:
        src = Path(tmp) / "upload.sqlite"
        src.write_bytes(body)
        try:
            get_store().import_database(src)
        except PersistenceFailure as e:
            raise HTTPException(status_code=400, detail=str(e))
    return {"message": "database imported"}


@app.post("/deck_view")
def deck_view(req: DeckViewRequest):
    """Filter, sort and group the session's picks for deck building."""
    session = _get_session(req.session_id)
    filters = CardFilters(colors=req.colors, costs=req.costs, types=req.types, evasive_only=req.evasive_only)
    out = build_display_groups(session.state.picks, filters, req.sort)
    return {
        "count": len(out["filtered_cards"]),
        "groups": [{"type": g["type"], "cards": [c.to_record() for c in g["cards"]]} for g in out["groups"]],
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("sealed_draft.api.server:app", host=settings.host, port=settings.port, reload=False)
