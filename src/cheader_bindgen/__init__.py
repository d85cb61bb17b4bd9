"""cheader-bindgen - extract C type declarations from preprocessed headers."""

from .catalog import TypeCatalog
from .config import Config, ConfigError, load_config
from .diagnostics import (
    CatalogFrozenError,
    Diagnostic,
    DiagnosticKind,
    Diagnostics,
    HeaderError,
    MalformedLiteral,
    SourceReadError,
    UnbalancedNesting,
)
from .pipeline import TranslationResult, build_catalog, translate, translate_text
from .resolver import Resolver

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "TypeCatalog",
    "Resolver",
    "Config",
    "ConfigError",
    "load_config",
    "translate",
    "translate_text",
    "build_catalog",
    "TranslationResult",
    "HeaderError",
    "SourceReadError",
    "MalformedLiteral",
    "UnbalancedNesting",
    "CatalogFrozenError",
    "Diagnostic",
    "DiagnosticKind",
    "Diagnostics",
]
