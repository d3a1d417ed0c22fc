"""
CI Guard: Declared Dependencies

Every third-party module imported by the ``shopboost`` package must be
declared in pyproject.toml, including ones that would otherwise arrive only
as transitive dependencies (``postgrest`` comes in with ``supabase``).
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

# Import name -> distribution name on the package index
THIRD_PARTY = {
    "httpx": "httpx",
    "pandas": "pandas",
    "postgrest": "postgrest",
    "pydantic": "pydantic",
    "pydantic_settings": "pydantic-settings",
    "supabase": "supabase",
}

IMPORT_RE = re.compile(r"^\s*(?:from|import)\s+([A-Za-z_][A-Za-z0-9_]*)", re.MULTILINE)


def declared_distributions() -> set[str]:
    with open(ROOT / "pyproject.toml", "rb") as fh:
        project = tomllib.load(fh)["project"]
    return {re.split(r"[<>=!~\[ ;]", spec, maxsplit=1)[0].lower() for spec in project["dependencies"]}


def imported_modules() -> set[str]:
    found: set[str] = set()
    for path in (ROOT / "shopboost").rglob("*.py"):
        found.update(IMPORT_RE.findall(path.read_text(encoding="utf-8")))
    return found


class TestDeclaredDependencies:
    """Guard against importing an undeclared distribution."""

    @pytest.mark.parametrize("module", sorted(THIRD_PARTY))
    def test_imported_module_is_declared(self, module):
        if module not in imported_modules():
            pytest.skip(f"{module} is not imported by the package")

        assert THIRD_PARTY[module] in declared_distributions()

    def test_postgrest_imported_directly_and_declared(self):
        assert "postgrest" in imported_modules()
        assert "postgrest" in declared_distributions()
