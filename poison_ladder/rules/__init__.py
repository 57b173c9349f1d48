"""
Ladder rules: outcome resolution and rank transitions.
"""

from .outcome import resolve_outcome, set_winners
from .transitions import Transition, apply_adjustment, apply_contest

__all__ = [
    "resolve_outcome",
    "set_winners",
    "Transition",
    "apply_adjustment",
    "apply_contest",
]
