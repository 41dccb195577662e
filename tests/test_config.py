"""Tests for configuration manager."""

from pathlib import Path

import pytest  # type: ignore[import-not-found]
import yaml  # type: ignore[import-untyped]

from to_concentrate.core.config import ConfigManager, default_config_path


@pytest.fixture
def temp_config_path(tmp_path) -> Path:
    """Create a temporary config file path."""
    return tmp_path / "to-concentrate" / "config.yml"


def write_config(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(data, f)


class TestConfigManager:
    """Test ConfigManager."""

    def test_initialization_creates_default_config(self, temp_config_path: Path) -> None:
        """Test that initialization creates default configuration."""
        assert not temp_config_path.exists()

        config = ConfigManager(temp_config_path)

        assert temp_config_path.exists()
        assert config.get("duration.preparation") == 900
        assert config.get("duration.concentration") == 2400
        assert config.get("duration.relaxation") == 600
        assert config.get("notification.concentration.summary") == "Concentration Stage End"
        assert config.get("advanced.log_level") == "INFO"

    def test_generated_file_is_loadable(self, temp_config_path: Path) -> None:
        """Test the generated default file round-trips through YAML."""
        ConfigManager(temp_config_path)

        with open(temp_config_path) as f:
            data = yaml.safe_load(f)

        assert data == ConfigManager.DEFAULT_CONFIG

    def test_missing_file_without_create(self, temp_config_path: Path) -> None:
        """Test a missing file is an error when creation is disabled."""
        with pytest.raises(FileNotFoundError):
            ConfigManager(temp_config_path, create=False)

        assert not temp_config_path.exists()

    def test_load_existing_config(self, temp_config_path: Path, config_data: dict) -> None:
        """Test loading existing configuration."""
        write_config(temp_config_path, config_data)

        config = ConfigManager(temp_config_path)

        assert config.get("duration.preparation") == 10
        assert config.get("notification.preparation.summary") == "Preparation done"
        assert config.get("notification.relaxation.body") is None

    def test_merge_with_defaults(self, temp_config_path: Path) -> None:
        """Test that partial config is merged with defaults."""
        write_config(temp_config_path, {"duration": {"relaxation": 300}})

        config = ConfigManager(temp_config_path)

        # Custom value
        assert config.get("duration.relaxation") == 300

        # Default values should still be present
        assert config.get("duration.preparation") == 900
        assert config.get("notification.relaxation.summary") == "Relaxation Stage End"

    def test_runtime_paths(self, temp_config_path: Path) -> None:
        """Test runtime overrides are read."""
        write_config(temp_config_path, {"runtime": {"socket": "/tmp/custom.sock"}})

        config = ConfigManager(temp_config_path)

        assert config.get("runtime.socket") == "/tmp/custom.sock"
        assert config.get("runtime.pid_file") is None

    def test_get_with_default(self, temp_config_path: Path) -> None:
        """Test getting missing values returns the default."""
        config = ConfigManager(temp_config_path)

        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "default") == "default"
        assert config.get("duration.preparation.deeper", 5) == 5

    @pytest.mark.parametrize(
        "data",
        [
            {"duration": {"preparation": 0}},
            {"duration": {"concentration": "forty minutes"}},
            {"duration": {"nap": 60}},
            {"notification": {"relaxation": {"summary": None}}},
            {"notification": {"relaxation": {"summary": "ok", "sound": "bell"}}},
            {"advanced": {"log_level": "LOUD"}},
        ],
    )
    def test_invalid_config(self, temp_config_path: Path, data: dict) -> None:
        """Test invalid values are rejected."""
        write_config(temp_config_path, data)

        with pytest.raises(ValueError, match="Invalid configuration"):
            ConfigManager(temp_config_path)

    def test_invalid_config_left_untouched(self, temp_config_path: Path) -> None:
        """Test a rejected file is not overwritten."""
        write_config(temp_config_path, {"duration": {"preparation": -1}})
        original = temp_config_path.read_text()

        with pytest.raises(ValueError):
            ConfigManager(temp_config_path)

        assert temp_config_path.read_text() == original

    def test_unparsable_yaml(self, temp_config_path: Path) -> None:
        """Test broken YAML is reported as ValueError."""
        temp_config_path.parent.mkdir(parents=True)
        temp_config_path.write_text("duration: [unclosed\n")

        with pytest.raises(ValueError, match="Could not parse"):
            ConfigManager(temp_config_path)

    def test_non_mapping_yaml(self, temp_config_path: Path) -> None:
        """Test a top-level list is rejected."""
        temp_config_path.parent.mkdir(parents=True)
        temp_config_path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError, match="mapping"):
            ConfigManager(temp_config_path)

    def test_to_dict_returns_copy(self, temp_config_path: Path) -> None:
        """Test to_dict cannot mutate the manager."""
        config = ConfigManager(temp_config_path)

        data = config.to_dict()
        data["duration"]["preparation"] = 1

        assert config.get("duration.preparation") == 900


class TestDefaultConfigPath:
    """Test default config location."""

    def test_uses_xdg_config_home(self, monkeypatch, tmp_path) -> None:
        """Test XDG_CONFIG_HOME is honored."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_config_path() == tmp_path / "to-concentrate" / "config.yml"

    def test_falls_back_to_home(self, monkeypatch) -> None:
        """Test ~/.config is used without XDG_CONFIG_HOME."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        assert default_config_path() == Path.home() / ".config" / "to-concentrate" / "config.yml"
