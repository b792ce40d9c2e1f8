"""Sample games built on turnflow."""

from .nim import NimGame, create_nim_game, nim_actions, nim_flow

__all__ = ["NimGame", "create_nim_game", "nim_actions", "nim_flow"]
