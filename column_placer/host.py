"""
Host Module

Interface to the CAD model that owns the segments, levels and templates.

The host allows one mutation scope at a time. Scopes are not reentrant:
opening a scope while another is open raises NestedMutationScopeError. Every
mutating call must run inside an open scope and registers how to undo itself,
so rolling a scope back leaves the model exactly as it was when the scope
opened.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Mapping, Optional

from .errors import MutationScopeError, NestedMutationScopeError
from .geometry import Point
from .templates import TemplateEntry

logger = logging.getLogger("ModelHost")


@dataclass(frozen=True)
class Level:
    """Horizontal reference elevation"""
    name: str
    elevation: float


class MutationScope:
    """
    One atomic batch of model changes.

    Mutating host calls register undo actions here; rollback replays them in
    reverse order. A scope is closed by exactly one commit or rollback.
    """

    def __init__(self, name: str, log: Optional[logging.Logger] = None):
        self.name = name
        self.logger = log or logger
        self.status = "open"
        self._undo_actions: List[Callable[[], None]] = []

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def change_count(self) -> int:
        return len(self._undo_actions)

    def register_undo(self, action: Callable[[], None]) -> None:
        if not self.is_open:
            raise MutationScopeError(f"Scope '{self.name}' is already {self.status}")
        self._undo_actions.append(action)

    def commit(self) -> None:
        if not self.is_open:
            raise MutationScopeError(f"Scope '{self.name}' is already {self.status}")
        self.status = "committed"
        self.logger.info(f"Committed '{self.name}' ({len(self._undo_actions)} changes)")
        self._undo_actions.clear()

    def rollback(self) -> None:
        if not self.is_open:
            raise MutationScopeError(f"Scope '{self.name}' is already {self.status}")
        undone = len(self._undo_actions)
        while self._undo_actions:
            action = self._undo_actions.pop()
            action()
        self.status = "rolled_back"
        self.logger.warning(f"Rolled back '{self.name}' ({undone} changes undone)")


class ModelHost(ABC):
    """
    Base class for host models.

    Subclasses implement the catalog queries and the mutating operations;
    scope bookkeeping lives here.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.logger = log or logger
        self._active_scope: Optional[MutationScope] = None
        self.scope_history: List[str] = []

    @property
    def active_scope(self) -> Optional[MutationScope]:
        return self._active_scope

    @contextmanager
    def mutation_scope(self, name: str) -> Iterator[MutationScope]:
        """
        Open a mutation scope.

        The scope commits when the block exits normally and rolls back when an
        exception escapes, unless the caller already closed it.

        Raises:
            NestedMutationScopeError: If another scope is open
        """
        if self._active_scope is not None:
            raise NestedMutationScopeError(
                f"Cannot open '{name}' while '{self._active_scope.name}' is open"
            )

        scope = MutationScope(name, self.logger)
        self._active_scope = scope
        self.scope_history.append(name)
        self.logger.debug(f"Opened mutation scope '{name}'")

        try:
            yield scope
        except BaseException:
            if scope.is_open:
                scope.rollback()
            raise
        else:
            if scope.is_open:
                scope.commit()
        finally:
            self._active_scope = None

    def require_scope(self, operation: str) -> MutationScope:
        if self._active_scope is None or not self._active_scope.is_open:
            raise MutationScopeError(f"'{operation}' requires an open mutation scope")
        return self._active_scope

    @abstractmethod
    def get_levels(self) -> List[Level]:
        """All levels, ascending by elevation."""

    @abstractmethod
    def get_templates(self) -> List[TemplateEntry]:
        """All loaded templates."""

    @abstractmethod
    def load_standard_templates(self) -> int:
        """Bulk-load the standard template set; returns the number added."""

    @abstractmethod
    def derive_template(
        self,
        base: TemplateEntry,
        symbol_name: str,
        dimensions: Mapping[str, float]
    ) -> TemplateEntry:
        """
        Create a sized variant of `base`.

        Args:
            base: Template of the family to derive from
            symbol_name: Name of the new symbol
            dimensions: Role ("width"/"height") to value

        Raises:
            TemplateDerivationError: If the variant cannot be built
        """

    @abstractmethod
    def activate_template(self, entry: TemplateEntry) -> None:
        """Make a template usable for placement. Requires an open scope."""

    @abstractmethod
    def create_element(self, point: Point, template: TemplateEntry, level: Level) -> str:
        """Place one element; returns its reference. Requires an open scope."""
