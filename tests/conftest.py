"""
pytest configuration and shared fixtures for vpkg tests.

Fixtures defined here are automatically available to all tests.

Fixtures
--------
fixture_registry : Path
    The checked-in registry under tests/fixtures/registry.

registry_factory : Callable
    Builds a throwaway registry in a temporary directory.

host_project : Path
    An empty Go project with a go.mod.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixture_registry() -> Path:
    """Path to the checked-in fixture registry."""
    return FIXTURES_DIR / "registry"


@pytest.fixture
def host_project(tmp_path: Path) -> Path:
    """
    Create an empty host project.

    Returns
    -------
    Path
        Project root containing ``go.mod`` for module ``github.com/acme/shop``.
    """
    project = tmp_path / "shop"
    project.mkdir()
    (project / "go.mod").write_text("module github.com/acme/shop\n\ngo 1.22\n")
    return project


@pytest.fixture
def registry_factory(tmp_path: Path) -> Callable[..., Path]:
    """
    Build a registry on disk from plain dictionaries.

    The returned callable takes a list of packages, each a dict with:

    - ``entry``: the index row (``name``, ``type``, ``tags`` ...); the
      ``metadata`` location defaults to ``packages/<name>/meta.yaml``
    - ``meta``: the descriptor dict, or a raw string (written verbatim),
      or None to skip writing it
    - ``files``: mapping of path (relative to the descriptor) to content

    It returns the registry directory.
    """
    counter = {"n": 0}

    def _build(packages: list[dict[str, Any]]) -> Path:
        counter["n"] += 1
        root = tmp_path / f"registry{counter['n']}"
        root.mkdir()
        index_rows = []

        for package in packages:
            row = dict(package["entry"])
            row.setdefault("metadata", f"packages/{row['name']}/meta.yaml")
            index_rows.append(row)

            meta_path = root / row["metadata"]
            meta_path.parent.mkdir(parents=True, exist_ok=True)

            meta = package.get("meta")
            if isinstance(meta, str):
                meta_path.write_text(meta)
            elif meta is not None:
                meta_path.write_text(yaml.safe_dump(meta, sort_keys=False))

            for relative, content in package.get("files", {}).items():
                target = meta_path.parent / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                if isinstance(content, bytes):
                    target.write_bytes(content)
                else:
                    target.write_text(content)

        (root / "index.yaml").write_text(
            yaml.safe_dump({"packages": index_rows}, sort_keys=False)
        )
        return root

    return _build


@pytest.fixture
def simple_package() -> dict[str, Any]:
    """A valid fx-module package with one template and one asset."""
    return {
        "entry": {"name": "acme/widget", "type": "fx-module", "tags": ["ui"]},
        "meta": {
            "name": "acme/widget",
            "title": "Widget",
            "type": "fx-module",
            "version": "1.0.0",
            "templates": ["widget.go.tmpl", "logo.bin"],
            "destination": "internal/{namespace}/{package}",
        },
        "files": {
            "widget.go.tmpl": "package {{ package_ident }}\n\ntype {{ package | pascal }} struct{}\n",
            "logo.bin": b"\x89PNG\x00\xff{{ not rendered }}",
        },
    }
