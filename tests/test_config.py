"""
config 載入 / 驗證 / SyncOptions 單元測試
驗證只印警告、不拋例外；型別錯誤的欄位回退預設值。
"""
import json

from vds_sync.config import SyncOptions, load_config, validate_config


def write_config(tmp_path, data) -> str:
    path = tmp_path / "vds-sync.config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:

    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(str(tmp_path / "nope.json")) == {}

    def test_non_object_returns_empty_with_warning(self, tmp_path, capsys):
        path = write_config(tmp_path, ["not", "an", "object"])
        assert load_config(path) == {}
        assert "格式錯誤" in capsys.readouterr().out

    def test_valid_config_loaded(self, tmp_path, capsys):
        path = write_config(tmp_path, {"outputDir": "dist/css", "generateSass": True})
        cfg = load_config(path)
        assert cfg == {"outputDir": "dist/css", "generateSass": True}
        assert "⚠️" not in capsys.readouterr().out


class TestValidateConfig:

    def test_unknown_key_warns(self, capsys):
        validate_config({"outptDir": "x"})
        assert "未知欄位 'outptDir'" in capsys.readouterr().out

    def test_wrong_type_warns(self, capsys):
        validate_config({"proximityThreshold": "fifty"})
        assert "proximityThreshold" in capsys.readouterr().out

    def test_bool_is_not_a_number(self, capsys):
        validate_config({"debounce": True})
        assert "debounce" in capsys.readouterr().out

    def test_empty_config_is_silent(self, capsys):
        validate_config({})
        assert capsys.readouterr().out == ""


class TestSyncOptions:

    def test_defaults(self):
        options = SyncOptions.from_config({})
        assert options.output_dir == "src/styles"
        assert options.generate_tokens and options.generate_components and options.generate_layouts
        assert options.generate_sass is False
        assert options.watch_paths == ["src/**/*.css", "styles/**/*.css"]
        assert options.canvas_data_path == "src/design/design-data.json"
        assert options.update_canvas is True
        assert options.preserve_positions is True
        assert options.proximity_threshold == 50
        assert options.class_prefix == "vds-"
        assert options.token_prefix == "--vds"

    def test_overrides(self):
        options = SyncOptions.from_config({
            "outputDir": "out",
            "proximityThreshold": 80,
            "watchPaths": ["css/*.css", 3],
            "updateCanvas": False,
        })
        assert options.output_dir == "out"
        assert options.proximity_threshold == 80
        assert options.watch_paths == ["css/*.css"]
        assert options.update_canvas is False

    def test_wrong_types_fall_back(self):
        options = SyncOptions.from_config({"generateSass": "yes", "debounce": False})
        assert options.generate_sass is False
        assert options.debounce == 0.5
