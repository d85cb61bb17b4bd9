"""End-to-end pipeline: header file to catalog to emitted declarations."""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .catalog import TypeCatalog
from .config import Config
from .diagnostics import DiagnosticKind, Diagnostics
from .emitters import create_emitter
from .logging import get_logger
from .parser.classifier import DeclarationClassifier
from .parser.segmenter import StatementSegmenter
from .parser.tokenizer import Tokenizer
from .resolver import Resolver
from .source import SourceText, filter_lines, read_source

logger = get_logger("pipeline")

# Unrecognized statements are quoted up to this many characters
SNIPPET_LENGTH = 80


@dataclass
class TranslationResult:
    """Everything one run produces."""

    output: str
    catalog: TypeCatalog
    diagnostics: Diagnostics
    emitted: int = 0
    stats: dict[str, int] = field(default_factory=dict)


def build_catalog(
    source: SourceText,
    config: Config | None = None,
    diagnostics: Diagnostics | None = None,
    stats: Counter | None = None,
) -> TypeCatalog:
    """
    Tokenize, segment and classify `source` into a seeded type catalog.

    Args:
        source: Filtered header text
        config: Configuration (directive markers, known aliases)
        diagnostics: Collector for non-fatal problems (new one if None)
        stats: Optional counter updated with statement kinds

    Returns:
        Catalog holding header definitions followed by the known aliases
    """
    if config is None:
        config = Config()
    if diagnostics is None:
        diagnostics = Diagnostics()
    if stats is None:
        stats = Counter()

    markers = config.parser.directive_markers
    tokens = Tokenizer(source.text, line_map=source.line_map)
    segmenter = StatementSegmenter(tokens, diagnostics, directive_markers=markers)
    classifier = DeclarationClassifier(directive_markers=markers)
    catalog = TypeCatalog(diagnostics)

    for statement in segmenter:
        stats["statements"] += 1
        classification = classifier.classify(statement)
        stats[classification.kind.value] += 1

        if not classification.recognized:
            snippet = str(statement)
            if len(snippet) > SNIPPET_LENGTH:
                snippet = snippet[: SNIPPET_LENGTH - 3] + "..."
            first = statement.tokens[0]
            diagnostics.report(
                DiagnosticKind.UNRECOGNIZED_STATEMENT,
                snippet,
                line=first.line,
                column=first.column,
            )
            continue

        for definition in classification.definitions:
            catalog.insert(definition, line=statement.line)
            stats["definitions"] += 1

    stats["seeded"] = catalog.seed(config.known_aliases)
    return catalog


def translate_source(source: SourceText, config: Config | None = None) -> TranslationResult:
    """Run the whole pipeline on already loaded source text."""
    if config is None:
        config = Config()

    diagnostics = Diagnostics()
    stats: Counter = Counter()
    catalog = build_catalog(source, config, diagnostics, stats)

    emitter = create_emitter(config.output.target, diagnostics)
    resolver = Resolver(catalog, emitter, diagnostics)
    emitted = resolver.resolve_all()

    logger.info(
        "%s: %d statements, %d definitions, %d emitted, %d diagnostics",
        source.path or "<text>",
        stats["statements"],
        stats["definitions"],
        emitted,
        len(diagnostics),
    )

    return TranslationResult(
        output=emitter.render(),
        catalog=catalog,
        diagnostics=diagnostics,
        emitted=emitted,
        stats=dict(stats),
    )


def translate_text(text: str, config: Config | None = None) -> TranslationResult:
    """Translate header text held in memory."""
    return translate_source(filter_lines(text.splitlines()), config)


def translate(path: Path, config: Config | None = None) -> TranslationResult:
    """
    Translate one preprocessed header file.

    Raises:
        SourceReadError: If the file cannot be read
    """
    if config is None:
        config = Config()
    source = read_source(path, encoding=config.parser.encoding)
    return translate_source(source, config)
