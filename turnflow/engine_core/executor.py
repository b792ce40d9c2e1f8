"""
Action Executor - Validates and runs one action against its arguments.

The executor is stateless apart from the host it is bound to. It:
1. Maps serialized argument values back to live references
2. Computes the legal values of each selection
3. Validates selections and whole actions
4. Runs the execute callback, turning exceptions into failures
5. Decides whether an action can be performed at all (availability search)
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from ..flow_schema.actions import ActionDefinition, Selection, SelectionKind, ENUMERABLE_KINDS
from .action import (
    ActionResult,
    ActionValidation,
    SelectionContext,
    SelectionValidation,
    INVALID_ACTION,
    EXECUTE_ERROR,
)

logger = logging.getLogger(__name__)


def element_id(element: Any) -> Any:
    """Identifier of a game element: its id attribute or "id" key."""
    if isinstance(element, dict):
        return element.get("id")
    return getattr(element, "id", None)


def _is_plain_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class ActionExecutor:
    """
    Runs actions for one host.

    The host must expose a players list; every callback receives a
    SelectionContext built from it.
    """
    game: Any

    # ------------------------------------------------------------------
    # Argument resolution
    # ------------------------------------------------------------------

    def resolve_args(
        self,
        action: ActionDefinition,
        player: Any,
        args: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Map serialized values to live references.

        Player selections accept a seat index, element selections accept an
        element id. References that cannot be resolved become None.
        Resolution runs in declared order so later selections see the
        resolved values of earlier ones.
        """
        resolved = dict(args)
        players = list(self.game.players)

        for selection in action.selections:
            if selection.name not in resolved:
                continue
            value = resolved[selection.name]

            if selection.kind == SelectionKind.PLAYER and _is_plain_int(value):
                resolved[selection.name] = players[value] if 0 <= value < len(players) else None

            elif selection.kind == SelectionKind.ELEMENT and value is not None:
                choices = self.get_choices(selection, player, resolved)
                if value in choices:
                    continue
                matches = [c for c in choices if element_id(c) == value]
                if matches:
                    resolved[selection.name] = matches[0]
                elif isinstance(value, (int, str)):
                    resolved[selection.name] = None

        return resolved

    # ------------------------------------------------------------------
    # Choices
    # ------------------------------------------------------------------

    def get_choices(
        self,
        selection: Selection,
        player: Any,
        partial_args: dict[str, Any] | None = None,
    ) -> list[Any]:
        """Legal values for a selection given the arguments chosen so far."""
        ctx = SelectionContext(game=self.game, player=player, args=dict(partial_args or {}))

        handlers: dict[SelectionKind, Callable[[Selection, SelectionContext], list[Any]]] = {
            SelectionKind.CHOICE: self._choices_choice,
            SelectionKind.PLAYER: self._choices_player,
            SelectionKind.ELEMENT: self._choices_element,
            SelectionKind.TEXT: self._choices_free,
            SelectionKind.NUMBER: self._choices_free,
        }
        choices = handlers[selection.kind](selection, ctx)

        if selection.filter is not None and selection.kind in ENUMERABLE_KINDS:
            choices = [c for c in choices if selection.filter(c, ctx)]
        return choices

    def _choices_choice(self, selection: Selection, ctx: SelectionContext) -> list[Any]:
        dependency = selection.depends_on
        if dependency is not None:
            prior = ctx.args.get(dependency.selection)
            if prior is None:
                return []
            if callable(dependency.choices):
                return list(dependency.choices(prior, ctx) or [])
            return list(_lookup(dependency.choices, prior))

        if callable(selection.choices):
            return list(selection.choices(ctx) or [])
        return list(selection.choices or [])

    def _choices_player(self, selection: Selection, ctx: SelectionContext) -> list[Any]:
        return list(self.game.players)

    def _choices_element(self, selection: Selection, ctx: SelectionContext) -> list[Any]:
        if callable(selection.elements):
            return list(selection.elements(ctx) or [])
        return list(selection.elements or [])

    def _choices_free(self, selection: Selection, ctx: SelectionContext) -> list[Any]:
        return []

    def should_skip(
        self,
        selection: Selection,
        player: Any,
        partial_args: dict[str, Any] | None = None,
    ) -> bool:
        """True exactly when skip_if_only_one is set and one legal value exists."""
        if not selection.skip_if_only_one or selection.kind not in ENUMERABLE_KINDS:
            return False
        return len(self.get_choices(selection, player, partial_args)) == 1

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_selection(
        self,
        selection: Selection,
        value: Any,
        player: Any,
        partial_args: dict[str, Any] | None = None,
    ) -> SelectionValidation:
        """Kind-specific checks, then the selection's own validate predicate."""
        args = dict(partial_args or {})
        name = selection.name

        if selection.kind in ENUMERABLE_KINDS:
            if value not in self.get_choices(selection, player, args):
                return SelectionValidation(False, f"Invalid choice for '{name}': {value!r}")

        elif selection.kind == SelectionKind.TEXT:
            if not isinstance(value, str):
                return SelectionValidation(False, f"'{name}' must be text")
            if selection.min_length is not None and len(value) < selection.min_length:
                return SelectionValidation(False, f"'{name}' must be at least {selection.min_length} characters")
            if selection.max_length is not None and len(value) > selection.max_length:
                return SelectionValidation(False, f"'{name}' must be at most {selection.max_length} characters")
            if selection.pattern is not None and re.fullmatch(selection.pattern, value) is None:
                return SelectionValidation(False, f"'{name}' does not match the required format")

        elif selection.kind == SelectionKind.NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return SelectionValidation(False, f"'{name}' must be a number")
            if selection.min is not None and value < selection.min:
                return SelectionValidation(False, f"'{name}' must be at least {selection.min}")
            if selection.max is not None and value > selection.max:
                return SelectionValidation(False, f"'{name}' must be at most {selection.max}")
            if selection.integer and not float(value).is_integer():
                return SelectionValidation(False, f"'{name}' must be a whole number")

        if selection.validate is not None:
            ctx = SelectionContext(game=self.game, player=player, args=args)
            verdict = selection.validate(value, ctx)
            if isinstance(verdict, str):
                return SelectionValidation(False, verdict)
            if verdict is False:
                return SelectionValidation(False, f"Invalid value for '{name}'")

        return SelectionValidation(True)

    def validate_action(
        self,
        action: ActionDefinition,
        player: Any,
        args: dict[str, Any],
    ) -> ActionValidation:
        """
        Check the availability condition, then every selection.

        Collects all selection errors instead of stopping at the first.
        """
        ctx = SelectionContext(game=self.game, player=player, args=dict(args))
        if action.condition is not None and not action.condition(ctx):
            return ActionValidation(False, [f"Action '{action.name}' is not available"])

        errors = []
        for selection in action.selections:
            value = args.get(selection.name)
            if value is None:
                if not selection.optional:
                    errors.append(f"Missing required selection '{selection.name}'")
                continue
            result = self.validate_selection(selection, value, player, args)
            if not result.valid:
                errors.append(result.error)

        return ActionValidation(valid=len(errors) == 0, errors=errors)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def next_selection(
        self,
        action: ActionDefinition,
        player: Any,
        args: dict[str, Any] | None = None,
    ) -> tuple[Selection | None, dict[str, Any]]:
        """
        Next selection the caller has to supply.

        Selections with a single legal value and skip_if_only_one are filled
        in and never returned. Returns (None, args) once every selection has
        a value; an optional selection counts as supplied when its key is
        present, even with None.
        """
        args = dict(args or {})
        for selection in action.selections:
            if selection.name in args:
                continue
            if self.should_skip(selection, player, args):
                args[selection.name] = self.get_choices(selection, player, args)[0]
                continue
            return selection, args
        return None, args

    def execute_action(
        self,
        action: ActionDefinition,
        player: Any,
        args: dict[str, Any] | None = None,
    ) -> ActionResult:
        """Resolve, validate, and run an action. Never raises for callback errors."""
        resolved = self.resolve_args(action, player, args or {})

        for selection in action.selections:
            if resolved.get(selection.name) is None and self.should_skip(selection, player, resolved):
                resolved[selection.name] = self.get_choices(selection, player, resolved)[0]

        validation = self.validate_action(action, player, resolved)
        if not validation.valid:
            return ActionResult.failure("; ".join(validation.errors), error_code=INVALID_ACTION)

        ctx = SelectionContext(game=self.game, player=player, args=resolved)
        try:
            returned = action.execute(resolved, ctx)
        except Exception as e:
            logger.warning("Action '%s' raised: %s", action.name, e)
            return ActionResult.failure(str(e), error_code=EXECUTE_ERROR)

        return ActionResult.from_callback(returned)

    # ------------------------------------------------------------------
    # Availability search
    # ------------------------------------------------------------------

    def is_action_available(self, action: ActionDefinition, player: Any) -> bool:
        """
        Whether some full argument set would make the action valid.

        Walks selections in declared order. Optional, text and number
        selections never block. A selection that a later selection names in
        its depends_on is branched over every legal value (and, when
        optional, over leaving it out); any other
        selection only has to have at least one legal value. Filters that
        read ctx.args without a declared dependency are not branched, so
        such actions can be reported available when no full assignment
        succeeds.
        """
        ctx = SelectionContext(game=self.game, player=player, args={})
        if action.condition is not None and not action.condition(ctx):
            return False

        branched = {
            s.depends_on.selection
            for s in action.selections
            if s.kind == SelectionKind.CHOICE and s.depends_on is not None
        }
        return self._has_path(action.selections, 0, player, {}, branched)

    def _has_path(
        self,
        selections: list[Selection],
        position: int,
        player: Any,
        args: dict[str, Any],
        branched: set[str],
    ) -> bool:
        if position == len(selections):
            return True

        selection = selections[position]
        if selection.kind not in ENUMERABLE_KINDS:
            return self._has_path(selections, position + 1, player, args, branched)
        if selection.optional and selection.name not in branched:
            return self._has_path(selections, position + 1, player, args, branched)

        choices = self.get_choices(selection, player, args)
        if selection.optional:
            # each legal value, then leaving it out
            for choice in choices:
                if self._has_path(selections, position + 1, player, {**args, selection.name: choice}, branched):
                    return True
            return self._has_path(selections, position + 1, player, args, branched)

        if not choices:
            return False

        if selection.name not in branched:
            return self._has_path(selections, position + 1, player, args, branched)

        for choice in choices:
            if self._has_path(selections, position + 1, player, {**args, selection.name: choice}, branched):
                return True
        return False


def _lookup(mapping: Any, key: Any) -> list[Any]:
    """Dependency mapping lookup by value, falling back to the value's id."""
    try:
        if key in mapping:
            return mapping[key]
    except TypeError:
        pass
    ident = element_id(key)
    if ident is not None and ident in mapping:
        return mapping[ident]
    return []
