"""
Action Catalogue - Actions and their input selections.

An action is a named, player-triggerable operation:
- An optional availability condition
- An ordered list of selections (the inputs the player must supply)
- An execute callback that applies the effect

Selections are typed input slots. Choice selections can declare a
dependency on an earlier selection, narrowing their choices by the value
already chosen for it. The engine never looks inside the callbacks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Sequence


class SelectionKind(Enum):
    """Types of selections."""
    CHOICE = "choice"  # Pick from a list of values
    PLAYER = "player"  # Pick a player
    ELEMENT = "element"  # Pick a game element
    TEXT = "text"  # Free text
    NUMBER = "number"  # Free number


# Kinds whose legal values can be enumerated
ENUMERABLE_KINDS = frozenset({SelectionKind.CHOICE, SelectionKind.PLAYER, SelectionKind.ELEMENT})


@dataclass(frozen=True)
class Dependency:
    """
    Narrows a choice selection by the value chosen for an earlier selection.

    choices is either a mapping from the earlier value to the allowed
    choices, or a callable (value, ctx) -> choices.
    """
    selection: str
    choices: Mapping[Any, Sequence[Any]] | Callable[[Any, Any], Sequence[Any]]


@dataclass(frozen=True)
class Selection:
    """
    One named input slot of an action.

    Shared fields apply to every kind; the remaining fields only
    matter for the kinds noted next to them.
    """
    kind: SelectionKind
    name: str
    prompt: str = ""
    optional: bool = False
    skip_if_only_one: bool = False
    validate: Callable[[Any, Any], bool | str] | None = None

    # Choice / Player / Element
    filter: Callable[[Any, Any], bool] | None = None

    # Choice
    choices: Sequence[Any] | Callable[[Any], Sequence[Any]] | None = None
    depends_on: Dependency | None = None

    # Element
    elements: Sequence[Any] | Callable[[Any], Sequence[Any]] | None = None

    # Text
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    # Number
    min: float | None = None
    max: float | None = None
    integer: bool = False


@dataclass
class ActionDefinition:
    """
    A complete action that can be registered with a host.

    execute(args, ctx) returns None, an ActionResult, or a dict
    with success / message / data keys.
    """
    name: str
    execute: Callable[[dict[str, Any], Any], Any]
    selections: list[Selection] = field(default_factory=list)
    condition: Callable[[Any], bool] | None = None
    prompt: str = ""
    undoable: bool = True

    def get_selection(self, name: str) -> Selection | None:
        """Get a selection by name."""
        for selection in self.selections:
            if selection.name == name:
                return selection
        return None


# ============================================================================
# Factory functions for common selections
# ============================================================================

def choose_from(
    name: str,
    choices: Sequence[Any] | Callable[[Any], Sequence[Any]] | None = None,
    depends_on: str | None = None,
    dependent_choices: Mapping[Any, Sequence[Any]] | Callable[[Any, Any], Sequence[Any]] | None = None,
    prompt: str = "",
    filter: Callable[[Any, Any], bool] | None = None,
    optional: bool = False,
    skip_if_only_one: bool = False,
    validate: Callable[[Any, Any], bool | str] | None = None,
) -> Selection:
    """Create a choice selection, optionally narrowed by an earlier selection."""
    dependency = None
    if depends_on is not None:
        if dependent_choices is None:
            raise ValueError(f"Selection '{name}' depends on '{depends_on}' but has no dependent_choices")
        dependency = Dependency(selection=depends_on, choices=dependent_choices)
    return Selection(
        kind=SelectionKind.CHOICE,
        name=name,
        prompt=prompt,
        choices=tuple(choices) if isinstance(choices, (list, tuple)) else choices,
        depends_on=dependency,
        filter=filter,
        optional=optional,
        skip_if_only_one=skip_if_only_one,
        validate=validate,
    )


def choose_player(
    name: str,
    filter: Callable[[Any, Any], bool] | None = None,
    prompt: str = "",
    optional: bool = False,
    skip_if_only_one: bool = False,
    validate: Callable[[Any, Any], bool | str] | None = None,
) -> Selection:
    """Create a player selection over the host's players."""
    return Selection(
        kind=SelectionKind.PLAYER,
        name=name,
        prompt=prompt,
        filter=filter,
        optional=optional,
        skip_if_only_one=skip_if_only_one,
        validate=validate,
    )


def choose_element(
    name: str,
    elements: Sequence[Any] | Callable[[Any], Sequence[Any]],
    filter: Callable[[Any, Any], bool] | None = None,
    prompt: str = "",
    optional: bool = False,
    skip_if_only_one: bool = False,
    validate: Callable[[Any, Any], bool | str] | None = None,
) -> Selection:
    """Create an element selection over caller-supplied elements."""
    return Selection(
        kind=SelectionKind.ELEMENT,
        name=name,
        prompt=prompt,
        elements=tuple(elements) if isinstance(elements, (list, tuple)) else elements,
        filter=filter,
        optional=optional,
        skip_if_only_one=skip_if_only_one,
        validate=validate,
    )


def enter_text(
    name: str,
    prompt: str = "",
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    optional: bool = False,
    validate: Callable[[Any, Any], bool | str] | None = None,
) -> Selection:
    """Create a free text selection."""
    return Selection(
        kind=SelectionKind.TEXT,
        name=name,
        prompt=prompt,
        min_length=min_length,
        max_length=max_length,
        pattern=pattern,
        optional=optional,
        validate=validate,
    )


def enter_number(
    name: str,
    prompt: str = "",
    min: float | None = None,
    max: float | None = None,
    integer: bool = False,
    optional: bool = False,
    validate: Callable[[Any, Any], bool | str] | None = None,
) -> Selection:
    """Create a free number selection."""
    return Selection(
        kind=SelectionKind.NUMBER,
        name=name,
        prompt=prompt,
        min=min,
        max=max,
        integer=integer,
        optional=optional,
        validate=validate,
    )
