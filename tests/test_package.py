"""
Every module in the package compiles cleanly, with no invalid escape sequences in docstrings.
"""

import warnings
from pathlib import Path

import pytest

import campus_ops

SOURCES = sorted(Path(campus_ops.__file__).parent.rglob("*.py"))


@pytest.mark.parametrize("path", SOURCES, ids=lambda p: str(p.relative_to(p.parents[1])))
def test_module_compiles_without_warnings(path: Path):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(path.read_text(encoding="utf-8"), str(path), "exec")
