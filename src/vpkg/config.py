"""
vpkg.config - Settings
======================

Settings are resolved from, lowest to highest precedence:

1. Built-in defaults
2. ``vpkg.toml`` in the host project root
3. ``VPKG_REGISTRY``, ``VPKG_MODULE`` and ``VPKG_WORKERS`` environment
   variables
4. Command-line flags (applied by the CLI)

Example ``vpkg.toml``::

    registry = "../vandor-registry"
    module = "github.com/acme/shop"
    workers = 4

Relative ``registry`` paths in ``vpkg.toml`` are resolved against the
project root; relative paths from the environment against the current
directory.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vpkg.errors import ConfigError
from vpkg.registry import format_validation_error


if TYPE_CHECKING:
    from collections.abc import Mapping


CONFIG_FILENAME = "vpkg.toml"

ENV_PREFIX = "VPKG_"


class Settings(BaseModel):
    """
    Effective vpkg settings.

    Attributes
    ----------
    registry : Path
        Registry directory or index document.

    module : str | None
        Host module override. Detected from go.mod when None.

    workers : int | None
        Upper bound on install worker threads.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    registry: Path = Field(
        default=Path("registry"),
        description="Registry directory or index document",
    )
    module: str | None = Field(
        default=None,
        description="Host module identifier override",
    )
    workers: int | None = Field(
        default=None,
        gt=0,
        description="Maximum number of install worker threads",
    )

    @classmethod
    def from_toml(cls, path: Path) -> dict[str, Any]:
        """
        Read raw settings from a TOML file.

        Relative ``registry`` values are anchored at the file's directory.

        Raises
        ------
        ConfigError
            If the file cannot be read or parsed.
        """
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read {path}: {e}", path=path) from e

        registry = data.get("registry")
        if isinstance(registry, str) and not Path(registry).is_absolute():
            data["registry"] = path.parent / registry

        return data


def load_settings(
    project_root: Path,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Resolve settings for a host project.

    Parameters
    ----------
    project_root : Path
        Host project root, searched for ``vpkg.toml``.

    environ : Mapping[str, str] | None
        Environment to read ``VPKG_*`` variables from. Defaults to
        :data:`os.environ`.

    Returns
    -------
    Settings
        Validated settings.

    Raises
    ------
    ConfigError
        If the file or any value is invalid.
    """
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    config_path = project_root / CONFIG_FILENAME
    if config_path.is_file():
        data.update(Settings.from_toml(config_path))

    for key in ("registry", "module", "workers"):
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value:
            data[key] = value

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {format_validation_error(e)}", path=config_path) from e
