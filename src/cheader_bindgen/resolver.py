"""Dependency-ordered emission of catalog definitions.

Struct members are resolved before the struct itself is emitted. A visited
set makes every name emit at most once and stops reference cycles. The walk
uses an explicit stack, so deeply nested struct graphs cannot hit the
interpreter's recursion limit.
"""

from .catalog import TypeCatalog
from .diagnostics import DiagnosticKind, Diagnostics
from .emitters import Emitter
from .logging import get_logger
from .types import StructDef

logger = get_logger("resolver")


class Resolver:
    """
    Resolve catalog entries and hand them to an emitter in dependency order.

    Creating a resolver freezes the catalog.
    """

    def __init__(
        self,
        catalog: TypeCatalog,
        emitter: Emitter,
        diagnostics: Diagnostics | None = None,
    ):
        self.catalog = catalog
        self.emitter = emitter
        self.diagnostics = diagnostics if diagnostics is not None else catalog.diagnostics
        self.visited: set[str] = set()
        catalog.freeze()

    def resolve(self, name: str) -> bool:
        """
        Emit `name` after everything its members refer to.

        Returns:
            False if `name` itself is not in the catalog, True otherwise
            (including when it was already emitted)
        """
        found = True
        # (name, members already resolved, referencing name)
        stack: list[tuple[str, bool, str | None]] = [(name, False, None)]

        while stack:
            current, expanded, referrer = stack.pop()

            if expanded:
                self.emitter.emit(self.catalog[current])
                continue

            if current in self.visited:
                continue
            self.visited.add(current)

            definition = self.catalog.get(current)
            if definition is None:
                message = f"{current} is not defined"
                if referrer is not None:
                    message = f"{current} (referenced by {referrer}) is not defined"
                self.diagnostics.report(DiagnosticKind.UNDEFINED_REFERENCED_TYPE, message)
                if current == name:
                    found = False
                continue

            if isinstance(definition, StructDef):
                stack.append((current, True, referrer))
                dependencies = [
                    member.referenced_name
                    for member in definition.members
                    if member.referenced_name is not None
                ]
                # reversed so members resolve in declaration order
                for dependency in reversed(dependencies):
                    stack.append((dependency, False, current))
            else:
                self.emitter.emit(definition)

        return found

    def resolve_all(self) -> int:
        """
        Resolve every catalog entry in first-declared order.

        Returns:
            Number of definitions emitted
        """
        for name in self.catalog.names():
            self.resolve(name)
        logger.debug("Emitted %d of %d definitions", len(self.emitter.emitted), len(self.catalog))
        return len(self.emitter.emitted)
