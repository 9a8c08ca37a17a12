# pylint: disable=missing-module-docstring,missing-function-docstring

import re
from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _declared() -> set[str]:
    with PYPROJECT.open("rb") as fh:
        deps = tomllib.load(fh)["project"]["dependencies"]
    return {re.split(r"[<>=!~;\[ ]", d, maxsplit=1)[0].lower() for d in deps}


@pytest.mark.parametrize("distribution", [
    "sqlmodel",
    "sqlalchemy",
    "httpx",
    "openai",
    "langfuse",
    "streamlit",
])
def test_directly_imported_libraries_are_declared(distribution) -> None:
    assert distribution in _declared()
