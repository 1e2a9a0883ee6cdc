"""Tests for collate.config and collate.config_loader."""

from pathlib import Path

import pytest

from collate._errors import ConfigError
from collate.config import CollateConfig
from collate.config_loader import find_config_file, load_config


class TestCollateConfig:
    """CollateConfig — frozen dataclass with sensible defaults."""

    def test_defaults(self) -> None:
        config = CollateConfig()
        assert config.pages_dir == "pages"
        assert ".tsx" in config.extensions
        assert ".py" in config.extensions
        assert config.debounce_ms == 50
        assert config.preserve_slashes is False
        assert config.record_types == ()
        assert config.data_file is None

    def test_frozen(self) -> None:
        config = CollateConfig()
        with pytest.raises(AttributeError):
            config.debounce_ms = 10  # type: ignore[misc]

    def test_relative_root_resolved(self) -> None:
        config = CollateConfig(root=Path("."))
        assert config.root.is_absolute()

    def test_pages_path(self, tmp_path: Path) -> None:
        config = CollateConfig(root=tmp_path, pages_dir="src/pages")
        assert config.pages_path == tmp_path / "src" / "pages"

    def test_data_path(self, tmp_path: Path) -> None:
        assert CollateConfig(root=tmp_path).data_path is None
        assert CollateConfig(root=tmp_path, data_file="data.yaml").data_path == tmp_path / "data.yaml"

    def test_absolute_data_path_preserved(self, tmp_path: Path) -> None:
        data = tmp_path / "elsewhere" / "data.json"
        assert CollateConfig(root=tmp_path, data_file=str(data)).data_path == data

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"debounce_ms": 0},
            {"step_ms": 0},
            {"debounce_ms": 10, "step_ms": 20},
            {"retry_initial_s": 0},
            {"retry_initial_s": 5.0, "retry_max_s": 1.0},
        ],
    )
    def test_invalid_values(self, tmp_path: Path, kwargs: dict[str, object]) -> None:
        with pytest.raises(ConfigError):
            CollateConfig(root=tmp_path, **kwargs)  # type: ignore[arg-type]


class TestLoadConfig:
    """load_config — collate.yaml / collate.toml merged with overrides."""

    def test_no_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config == CollateConfig(root=tmp_path)
        assert find_config_file(tmp_path) is None

    def test_yaml_section(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text(
            "collate:\n"
            "  pages_dir: src/pages\n"
            "  record_types: [Post, Author]\n"
            "  preserve_slashes: true\n"
        )
        config = load_config(tmp_path)
        assert config.pages_dir == "src/pages"
        assert config.record_types == ("Post", "Author")
        assert config.preserve_slashes is True

    def test_yaml_top_level_keys(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yml").write_text("debounce_ms: 100\nignore: '*.draft.*'\n")
        config = load_config(tmp_path)
        assert config.debounce_ms == 100
        assert config.ignore == ("*.draft.*",)

    def test_toml(self, tmp_path: Path) -> None:
        (tmp_path / "collate.toml").write_text(
            '[collate]\nextensions = [".vue"]\ndata_file = "data.yaml"\n'
        )
        config = load_config(tmp_path)
        assert config.extensions == (".vue",)
        assert config.data_path == tmp_path / "data.yaml"

    def test_yaml_preferred_over_toml(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("pages_dir: from-yaml\n")
        (tmp_path / "collate.toml").write_text('pages_dir = "from-toml"\n')
        assert find_config_file(tmp_path) == tmp_path / "collate.yaml"
        assert load_config(tmp_path).pages_dir == "from-yaml"

    def test_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("pages_dir: from-file\n")
        config = load_config(tmp_path, pages_dir="from-override", record_types=["Post"])
        assert config.pages_dir == "from-override"
        assert config.record_types == ("Post",)

    def test_unknown_key(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("collate:\n  port: 3000\n")
        with pytest.raises(ConfigError, match="unknown config key"):
            load_config(tmp_path)

    def test_unrelated_top_level_keys_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("site:\n  title: Blog\n")
        assert load_config(tmp_path).pages_dir == "pages"

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("collate: [unclosed\n")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "collate.toml").write_text("collate = \n")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("- pages\n")
        with pytest.raises(ConfigError, match="expected a mapping"):
            load_config(tmp_path)

    def test_unknown_override(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid collate configuration"):
            load_config(tmp_path, port=3000)

    def test_invalid_value_from_file(self, tmp_path: Path) -> None:
        (tmp_path / "collate.yaml").write_text("debounce_ms: 0\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path)
