"""Tests for ProxyCtlSettings: unified settings with TOML source."""

from pathlib import Path

import pytest

from proxyctl.config.settings import ProxyCtlSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("PROXYCTL_CONFIG", "PROXYCTL_VERBOSE", "PROXYCTL_DATABASE__PATH"):
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = ProxyCtlSettings.load(data_root=tmp_path)
        assert settings.data_root == tmp_path
        assert settings.config_path is None
        assert settings.verbose is False
        assert settings.database.path == "proxyctl.db"
        assert settings.plugins.enabled is True
        assert settings.nginx.reload_command == ["nginx", "-s", "reload"]
        assert "letsencrypt_agree" in settings.meta.internal_keys

    def test_frozen(self, tmp_path: Path) -> None:
        settings = ProxyCtlSettings.load(data_root=tmp_path)
        with pytest.raises(Exception):
            settings.verbose = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "proxyctl.toml").write_text(
            '[database]\npath = "data/hosts.db"\n[meta]\ninternal_keys = ["secret"]\n'
        )
        settings = ProxyCtlSettings.load(data_root=tmp_path)
        assert settings.database.path == "data/hosts.db"
        assert settings.meta.internal_keys == ["secret"]
        assert settings.nginx.config_dir == "nginx"  # default preserved

    def test_data_root_defaults_to_config_parent(self, tmp_path: Path) -> None:
        custom = tmp_path / "etc" / "proxyctl.toml"
        custom.parent.mkdir()
        custom.write_text("verbose = true\n")
        settings = ProxyCtlSettings.load(config_path=str(custom))
        assert settings.config_path == custom
        assert settings.data_root == custom.parent
        assert settings.verbose is True

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "proxyctl.toml").write_text("[database\n")
        with pytest.raises(ValueError, match="Invalid TOML"):
            ProxyCtlSettings.load(data_root=tmp_path)


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "proxyctl.toml").write_text('[database]\npath = "toml.db"\n')
        monkeypatch.setenv("PROXYCTL_DATABASE__PATH", "env.db")
        settings = ProxyCtlSettings.load(data_root=tmp_path)
        assert settings.database.path == "env.db"

    def test_init_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROXYCTL_VERBOSE", "true")
        settings = ProxyCtlSettings.load(data_root=tmp_path, verbose=False)
        assert settings.verbose is False


class TestResolvePath:
    def test_relative_and_absolute(self, tmp_path: Path) -> None:
        settings = ProxyCtlSettings.load(data_root=tmp_path)
        assert settings.resolve_path("nginx") == tmp_path / "nginx"
        assert settings.resolve_path("/etc/nginx") == Path("/etc/nginx")
