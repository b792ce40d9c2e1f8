"""
Flow Validation - Static checks for flow definitions and action catalogues.

Validates that:
1. Required fields are present for each node kind
2. Action steps reference registered actions
3. Bounds are consistent (min_moves <= max_moves, min <= max, ...)
4. Selection dependencies point at an earlier selection of the same action
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable

from .nodes import FlowDefinition, FlowNode, NodeKind
from .actions import ActionDefinition, SelectionKind


class FlowValidationError(Exception):
    """Raised when a flow or action catalogue fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Flow validation failed with {len(errors)} error(s): " + "; ".join(errors))


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_flow(
    definition: FlowDefinition,
    action_names: Iterable[str] | None = None,
) -> ValidationResult:
    """
    Validate a flow definition.

    If action_names is given, action steps naming unknown actions are errors.
    """
    errors: list[str] = []
    warnings: list[str] = []
    known_actions = set(action_names) if action_names is not None else None

    if definition.root is None:
        errors.append("Flow has no root node")
        return ValidationResult(valid=False, errors=errors, warnings=warnings)

    seen_names: set[str] = set()
    for node in iter_nodes(definition.root):
        errors.extend(_validate_node(node, known_actions))
        if node.name and node.kind != NodeKind.ACTION_STEP:
            if node.name in seen_names:
                warnings.append(f"Duplicate node name '{node.name}'")
            seen_names.add(node.name)

    if definition.get_winners is None:
        warnings.append("No get_winners callback defined")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_actions(actions: Iterable[ActionDefinition]) -> ValidationResult:
    """Validate an action catalogue."""
    errors: list[str] = []
    warnings: list[str] = []
    names: set[str] = set()

    for action in actions:
        if not action.name:
            errors.append("Action has empty name")
        elif action.name in names:
            errors.append(f"Duplicate action name '{action.name}'")
        names.add(action.name)

        if action.execute is None:
            errors.append(f"Action '{action.name}' has no execute callback")

        earlier: set[str] = set()
        for selection in action.selections:
            prefix = f"Action '{action.name}' selection '{selection.name}'"
            if selection.name in earlier:
                errors.append(f"{prefix} is declared twice")

            if selection.kind == SelectionKind.CHOICE:
                if selection.choices is None and selection.depends_on is None:
                    errors.append(f"{prefix} has no choices")
                if selection.depends_on and selection.depends_on.selection not in earlier:
                    errors.append(
                        f"{prefix} depends on '{selection.depends_on.selection}', "
                        "which is not an earlier selection"
                    )
            elif selection.kind == SelectionKind.ELEMENT and selection.elements is None:
                errors.append(f"{prefix} has no elements")
            elif selection.kind == SelectionKind.NUMBER:
                if selection.min is not None and selection.max is not None and selection.min > selection.max:
                    errors.append(f"{prefix} has min > max")
            elif selection.kind == SelectionKind.TEXT:
                if (
                    selection.min_length is not None
                    and selection.max_length is not None
                    and selection.min_length > selection.max_length
                ):
                    errors.append(f"{prefix} has min_length > max_length")

            if selection.skip_if_only_one and selection.kind in {SelectionKind.TEXT, SelectionKind.NUMBER}:
                warnings.append(f"{prefix}: skip_if_only_one has no effect on free input")

            earlier.add(selection.name)

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def iter_nodes(node: FlowNode) -> Iterable[FlowNode]:
    """Walk the tree depth-first, parents before children."""
    yield node
    for child in _children(node):
        yield from iter_nodes(child)


def _children(node: FlowNode) -> list[FlowNode]:
    children: list[FlowNode] = list(node.steps)
    for child in (node.body, node.then, node.otherwise, node.default):
        if child is not None:
            children.append(child)
    children.extend(branch for _, branch in node.cases)
    return children


def _validate_node(node: FlowNode, known_actions: set[str] | None) -> list[str]:
    """Validate a single node (not its children)."""
    errors = []
    label = node.label

    if node.kind == NodeKind.SEQUENCE and not node.steps:
        errors.append(f"Sequence '{label}' has no steps")

    if node.kind in {NodeKind.LOOP, NodeKind.EACH_PLAYER, NodeKind.FOR_EACH, NodeKind.PHASE}:
        if node.body is None:
            errors.append(f"{node.kind.value} '{label}' has no body")

    if node.max_iterations is not None and node.max_iterations < 1:
        errors.append(f"{node.kind.value} '{label}' has max_iterations < 1")

    if node.kind == NodeKind.EACH_PLAYER and node.direction not in {"forward", "backward"}:
        errors.append(f"each_player '{label}' has unknown direction '{node.direction}'")

    if node.kind == NodeKind.FOR_EACH and node.collection is None:
        errors.append(f"for_each '{label}' has no collection")

    if node.kind in {NodeKind.ACTION_STEP, NodeKind.SIMULTANEOUS_ACTION_STEP}:
        if not node.actions:
            errors.append(f"Action step '{label}' lists no actions")
        if known_actions is not None:
            for action_name in node.actions:
                if action_name not in known_actions:
                    errors.append(f"Action step '{label}' references unknown action '{action_name}'")
        if (
            node.min_moves is not None
            and node.max_moves is not None
            and node.min_moves > node.max_moves
        ):
            errors.append(f"Action step '{label}' has min_moves > max_moves")
        if node.max_moves is not None and node.max_moves < 1:
            errors.append(f"Action step '{label}' has max_moves < 1")

    if node.kind == NodeKind.SWITCH and node.on is None:
        errors.append(f"switch '{label}' has no discriminant")

    if node.kind == NodeKind.IF:
        if node.condition is None:
            errors.append(f"if '{label}' has no condition")
        if node.then is None:
            errors.append(f"if '{label}' has no then branch")

    if node.kind == NodeKind.EXECUTE and node.fn is None:
        errors.append(f"execute '{label}' has no callback")

    if node.kind == NodeKind.PHASE and not node.name:
        errors.append("Phase has no name")

    return errors
