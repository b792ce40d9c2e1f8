"""
Bots module - Automatic players.

Provides:
- BotPolicy: Interface for bot decision-making
- RandomPolicy / FirstLegalPolicy: Baseline policies
- play_out: Drive a flow to completion with a policy
"""

from .policy import BotPolicy, BotDecision, RandomPolicy, FirstLegalPolicy, play_out

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
    "play_out",
]
