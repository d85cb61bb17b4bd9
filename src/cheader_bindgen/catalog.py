"""Type catalog: declared name to definition.

Written while statements are classified, seeded with the known-alias table,
then frozen before resolution starts.
"""

from collections.abc import Iterator, Mapping

from .diagnostics import CatalogFrozenError, DiagnosticKind, Diagnostics
from .logging import get_logger
from .parser.tokenizer import tokenize
from .types import AliasDef, Definition, definition_kind, definition_to_dict

logger = get_logger("catalog")


class TypeCatalog:
    """
    Insertion-ordered mapping of type names to definitions.

    A later definition of the same name replaces the earlier one in place, so
    the name keeps its first-declared position.
    """

    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._definitions: dict[str, Definition] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise CatalogFrozenError("Type catalog is frozen; resolution has started")

    def insert(self, definition: Definition, line: int | None = None) -> None:
        """Add a definition, replacing any earlier one of the same name."""
        self._check_mutable()
        previous = self._definitions.get(definition.name)

        if previous is not None and previous != definition:
            if isinstance(previous, AliasDef) and (
                previous.is_forward_declaration
                or (previous.is_tag_reference and not isinstance(definition, AliasDef))
            ):
                logger.debug("Completing forward declaration of %s", definition.name)
            else:
                self.diagnostics.report(
                    DiagnosticKind.DUPLICATE_DEFINITION,
                    f"{definition.name} redefined as {definition_kind(definition)}; "
                    f"previous {definition_kind(previous)} replaced",
                    line=line,
                )

        self._definitions[definition.name] = definition

    def seed(self, aliases: Mapping[str, str]) -> int:
        """
        Merge known aliases. Seeds replace header definitions of the same name.

        Returns:
            Number of seeded entries
        """
        self._check_mutable()
        for name, target in aliases.items():
            if name in self._definitions:
                logger.debug("Seed alias overrides header definition of %s", name)
            self._definitions[name] = AliasDef(name=name, target=tuple(tokenize(target)))
        return len(aliases)

    def get(self, name: str) -> Definition | None:
        return self._definitions.get(name)

    def names(self) -> list[str]:
        return list(self._definitions)

    def to_dict(self) -> dict[str, dict]:
        return {name: definition_to_dict(d) for name, d in self._definitions.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __getitem__(self, name: str) -> Definition:
        return self._definitions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)
