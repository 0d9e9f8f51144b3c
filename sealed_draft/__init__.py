from .cards import Card, Color, Rarity, load_card_pool
from .exceptions import DraftError, InvalidPickIndex, NoUndoAvailable, RoundIntegrityWarning
from .machine import DraftStateMachine, active_pack_index
from .pack_factory import create_pack, create_round
from .state import DraftState, Pack, PickEvent, RoundState
from .tally import format_canonical, tally

__all__ = [
    "Card",
    "Color",
    "Rarity",
    "load_card_pool",
    "DraftError",
    "InvalidPickIndex",
    "NoUndoAvailable",
    "RoundIntegrityWarning",
    "DraftStateMachine",
    "active_pack_index",
    "create_pack",
    "create_round",
    "DraftState",
    "Pack",
    "PickEvent",
    "RoundState",
    "format_canonical",
    "tally",
]
