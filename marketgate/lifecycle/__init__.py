"""
Publication lifecycle for listing-like resources.
"""

from marketgate.lifecycle.state_machine import (
    TRANSITIONS,
    ResourceStateMachine,
    TransitionAuthority,
    TransitionResult,
)

__all__ = [
    "TRANSITIONS",
    "ResourceStateMachine",
    "TransitionAuthority",
    "TransitionResult",
]
