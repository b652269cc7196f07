"""Tests for ElxSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest
from pydantic import ValidationError

from elxctl.config.models import ReferencesConfig, ScannerConfig
from elxctl.config.settings import ElxSettings


class TestElxSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = ElxSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.references.prefix == "ELX"
        assert settings.references.min_digits == 4
        assert settings.scanner.enabled is True
        assert settings.scanner.kinds == ["pending", "delivered"]
        assert settings.mail.transport == "log"
        assert settings.pricing.currency == "GBP"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = ElxSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]

    def test_cli_flags(self, tmp_path: Path) -> None:
        settings = ElxSettings.from_cli(project_root=tmp_path, json_output=True, verbose=True)
        assert settings.json_output is True
        assert settings.verbose is True

    def test_db_path_relative_to_project(self, tmp_path: Path) -> None:
        settings = ElxSettings.from_cli(project_root=tmp_path)
        assert settings.db_path == tmp_path / ".elxctl" / "elxctl.db"

    def test_db_path_absolute_kept(self, tmp_path: Path) -> None:
        db = tmp_path / "elsewhere" / "ops.db"
        (tmp_path / "elxctl.toml").write_text(f'[database]\npath = "{db.as_posix()}"\n')
        settings = ElxSettings.from_cli(project_root=tmp_path)
        assert settings.db_path == db


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "elxctl.toml").write_text(
            '[references]\nprefix = "ecw"\n[mail]\nsupport_address = "ops@example.com"\n'
        )
        settings = ElxSettings.from_cli(project_root=tmp_path)
        assert settings.references.prefix == "ECW"
        assert settings.mail.support_address == "ops@example.com"
        assert settings.mail.transport == "log"  # default preserved

    def test_project_root_from_config_parent(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "elxctl.toml").write_text("[scanner]\ninterval_seconds = 15\n")
        child = tmp_path / "ops" / "scripts"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)
        settings = ElxSettings.from_cli()
        assert settings.project_root == tmp_path.resolve()
        assert settings.scanner.interval_seconds == 15

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "prod.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[pricing]\ncurrency = "USD"\n')
        settings = ElxSettings.from_cli(config_path=str(custom), project_root=tmp_path)
        assert settings.pricing.currency == "USD"
        assert settings.config_path == custom

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "elxctl.toml").write_text("[mail\ntransport = ")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            ElxSettings.from_cli(project_root=tmp_path)

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "elxctl.toml").write_text('[scanner]\nkinds = ["shipped"]\n')
        with pytest.raises(ValidationError):
            ElxSettings.from_cli(project_root=tmp_path)


class TestEnvSource:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "elxctl.toml").write_text('[mail]\ntransport = "log"\n')
        monkeypatch.setenv("ELXCTL_MAIL__TRANSPORT", "http")
        monkeypatch.setenv("ELXCTL_MAIL__API_KEY", "re_test")
        settings = ElxSettings.from_cli(project_root=tmp_path)
        assert settings.mail.transport == "http"
        assert settings.mail.api_key == "re_test"

    def test_cli_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELXCTL_QUIET", "true")
        settings = ElxSettings.from_cli(project_root=tmp_path, quiet=False)
        assert settings.quiet is False


class TestSectionModels:
    def test_prefix_normalized(self) -> None:
        assert ReferencesConfig(prefix=" elx ").prefix == "ELX"

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ScannerConfig(interval_seconds=0)
