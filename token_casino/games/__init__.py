from .engine import play_round
from .fairness import FairnessHasher
from .registry import GameRegistry
from .slots import PaylineEvaluator, ReelGenerator, SlotsGame
from .validator import BetValidator, SlotsBetValidator

__all__ = [
    "BetValidator",
    "FairnessHasher",
    "GameRegistry",
    "PaylineEvaluator",
    "ReelGenerator",
    "SlotsBetValidator",
    "SlotsGame",
    "play_round",
]
