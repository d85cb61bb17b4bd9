"""Parser components: tokenizer, statement segmenter and declaration classifier."""

from .classifier import Classification, DeclarationClassifier, StatementKind
from .segmenter import Statement, StatementSegmenter, segment
from .tokenizer import Token, TokenKind, Tokenizer, tokenize

__all__ = [
    "Tokenizer",
    "Token",
    "TokenKind",
    "tokenize",
    "StatementSegmenter",
    "Statement",
    "segment",
    "DeclarationClassifier",
    "Classification",
    "StatementKind",
]
