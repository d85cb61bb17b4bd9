"""Pytest configuration and fixtures for cheader-bindgen tests."""

import logging
from pathlib import Path

import pytest

from cheader_bindgen.logging import LOGGER_NAME

SAMPLE_HEADER = '''# 1 "sample.h"
# 1 "<built-in>"
typedef unsigned int uint32_T;
typedef struct _Handle *Handle;

typedef enum { RED = 1, GREEN, BLUE = 0x10 } Color;

typedef struct Point {
    int x, y;
    char tag[8];
} Point, *PPoint;

#pragma pack(push, 8)
typedef struct {
    Point origin;
    Color color;
    uint32_T flags : 3;
    int (*callback)(void *ctx);
} Shape;

extern int shape_area(const Shape *shape);
__pragma(pack(pop))
'''


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration overrides from the outer environment out of tests."""
    monkeypatch.delenv("CHEADER_BINDGEN_TARGET", raising=False)
    monkeypatch.delenv("CHEADER_BINDGEN_DIRECTIVES", raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def header_dir(tmp_path: Path) -> Path:
    """Create an isolated directory for header and config files."""
    directory = tmp_path / "include"
    directory.mkdir(parents=True)
    return directory


@pytest.fixture
def sample_header(header_dir: Path) -> Path:
    """Write a small preprocessed header with every supported declaration form."""
    header = header_dir / "sample.i"
    header.write_text(SAMPLE_HEADER)
    return header
