"""
Turnflow - Turn Structure Interpreter for Turn-Based Games

A deterministic, single-threaded engine that walks a declarative turn flow
and validates player actions. The engine provides:
- A flow tree of control nodes (sequence, loop, per-player iteration, branches)
- Suspension at decision points, resumable from a serialized Position
- Action/selection validation and an availability search
- A reference host facade for wiring actions, players and flows together
"""

__version__ = "0.1.0"
