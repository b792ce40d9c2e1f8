"""Flow schema - static flow trees and action catalogues."""

from .nodes import (
    FlowNode,
    FlowDefinition,
    NodeKind,
    sequence,
    loop,
    each_player,
    for_each,
    action_step,
    simultaneous_action_step,
    switch,
    if_then,
    execute,
    phase,
)
from .actions import (
    ActionDefinition,
    Dependency,
    Selection,
    SelectionKind,
    choose_from,
    choose_player,
    choose_element,
    enter_text,
    enter_number,
)
from .validation import validate_flow, validate_actions, FlowValidationError, ValidationResult

__all__ = [
    "FlowNode",
    "FlowDefinition",
    "NodeKind",
    "sequence",
    "loop",
    "each_player",
    "for_each",
    "action_step",
    "simultaneous_action_step",
    "switch",
    "if_then",
    "execute",
    "phase",
    "ActionDefinition",
    "Dependency",
    "Selection",
    "SelectionKind",
    "choose_from",
    "choose_player",
    "choose_element",
    "enter_text",
    "enter_number",
    "validate_flow",
    "validate_actions",
    "FlowValidationError",
    "ValidationResult",
]
