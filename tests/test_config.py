"""
Tests for vpkg.config
=====================

Test Organization
-----------------
- TestDefaults: Settings with no file and no environment
- TestConfigFile: vpkg.toml handling
- TestEnvironment: VPKG_* overrides and precedence
"""

from pathlib import Path

import pytest

from vpkg.config import Settings, load_settings
from vpkg.errors import ConfigError


# =============================================================================
# Default Tests
# =============================================================================

class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path, environ={})

        assert settings.registry == Path("registry")
        assert settings.module is None
        assert settings.workers is None

    def test_settings_are_frozen(self) -> None:
        settings = Settings()
        with pytest.raises(ValueError):
            settings.module = "x"


# =============================================================================
# Config File Tests
# =============================================================================

class TestConfigFile:
    """Tests for vpkg.toml."""

    def test_reads_values(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text(
            'registry = "/srv/registry"\n'
            'module = "github.com/acme/shop"\n'
            "workers = 4\n"
        )

        settings = load_settings(tmp_path, environ={})

        assert settings.registry == Path("/srv/registry")
        assert settings.module == "github.com/acme/shop"
        assert settings.workers == 4

    def test_relative_registry_anchored_at_project(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text('registry = "../shared-registry"\n')

        settings = load_settings(tmp_path, environ={})

        assert settings.registry == tmp_path / "../shared-registry"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text("registry = \n")
        with pytest.raises(ConfigError):
            load_settings(tmp_path, environ={})

    def test_unknown_key(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text('colour = "blue"\n')
        with pytest.raises(ConfigError, match="colour"):
            load_settings(tmp_path, environ={})

    def test_invalid_workers(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text("workers = 0\n")
        with pytest.raises(ConfigError, match="workers"):
            load_settings(tmp_path, environ={})


# =============================================================================
# Environment Tests
# =============================================================================

class TestEnvironment:
    """Tests for VPKG_* variables."""

    def test_environment_values(self, tmp_path: Path) -> None:
        settings = load_settings(
            tmp_path,
            environ={"VPKG_REGISTRY": "/opt/reg", "VPKG_MODULE": "m", "VPKG_WORKERS": "2"},
        )

        assert settings.registry == Path("/opt/reg")
        assert settings.module == "m"
        assert settings.workers == 2

    def test_environment_beats_file(self, tmp_path: Path) -> None:
        (tmp_path / "vpkg.toml").write_text('module = "from-file"\nworkers = 8\n')

        settings = load_settings(tmp_path, environ={"VPKG_MODULE": "from-env"})

        assert settings.module == "from-env"
        assert settings.workers == 8

    def test_empty_variable_ignored(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path, environ={"VPKG_MODULE": ""})
        assert settings.module is None

    def test_invalid_workers_variable(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_settings(tmp_path, environ={"VPKG_WORKERS": "many"})

    def test_reads_os_environ_by_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VPKG_MODULE", "from-os")
        assert load_settings(tmp_path).module == "from-os"
