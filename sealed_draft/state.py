"""
Draft state records.

Everything here converts to and from a plain JSON-compatible dict (camelCase keys,
no cycles) so a state can be stored as a single JSON column and read back by
either this package or the browser front-end that shares the format.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sealed_draft.cards import Card


@dataclass
class Pack:
    id: str
    cards: List[Card] = field(default_factory=list)
    removed_log: List[Any] = field(default_factory=list)  # ids stripped by random removal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cards": [c.to_record() for c in self.cards],
            "removedLog": list(self.removed_log),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pack":
        return cls(
            id=data["id"],
            cards=[Card.from_record(c) for c in data.get("cards", [])],
            removed_log=list(data.get("removedLog", [])),
        )


@dataclass
class RoundState:
    round_number: int
    packs: List[Pack]
    turn: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roundNumber": self.round_number,
            "packs": [p.to_dict() for p in self.packs],
            "turn": self.turn,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoundState":
        return cls(
            round_number=int(data["roundNumber"]),
            packs=[Pack.from_dict(p) for p in data.get("packs", [])],
            turn=int(data.get("turn", 1)),
        )


@dataclass
class PickEvent:
    round: int
    turn: int
    pack_index: int
    picked: Card
    removed_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round,
            "turn": self.turn,
            "packIndex": self.pack_index,
            "picked": self.picked.to_record(),
            "removedCounts": self.removed_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PickEvent":
        return cls(
            round=int(data["round"]),
            turn=int(data["turn"]),
            pack_index=int(data["packIndex"]),
            picked=Card.from_record(data["picked"]),
            removed_count=int(data.get("removedCounts", 0)),
        )


@dataclass
class DraftState:
    master_cards: List[Card]
    rounds: List[RoundState] = field(default_factory=list)
    current_round: int = 1
    current_turn: int = 1
    picks: List[Card] = field(default_factory=list)
    log: List[PickEvent] = field(default_factory=list)
    is_complete: bool = False
    undo_buffer: Optional["DraftState"] = None

    @property
    def active_round(self) -> Optional[RoundState]:
        return self.rounds[-1] if self.rounds else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "masterCards": [c.to_record() for c in self.master_cards],
            "rounds": [r.to_dict() for r in self.rounds],
            "currentRound": self.current_round,
            "currentTurn": self.current_turn,
            "picks": [c.to_record() for c in self.picks],
            "log": [e.to_dict() for e in self.log],
            "isComplete": self.is_complete,
            "undoBuffer": self.undo_buffer.to_dict() if self.undo_buffer is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftState":
        undo = data.get("undoBuffer")
        return cls(
            master_cards=[Card.from_record(c) for c in data.get("masterCards", [])],
            rounds=[RoundState.from_dict(r) for r in data.get("rounds", [])],
            current_round=int(data.get("currentRound", 1)),
            current_turn=int(data.get("currentTurn", 1)),
            picks=[Card.from_record(c) for c in data.get("picks", [])],
            log=[PickEvent.from_dict(e) for e in data.get("log", [])],
            is_complete=bool(data.get("isComplete", False)),
            undo_buffer=cls.from_dict(undo) if undo else None,
        )


__all__ = ["Pack", "RoundState", "PickEvent", "DraftState"]
