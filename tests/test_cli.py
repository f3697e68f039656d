"""
CLI 子命令測試：用 tmp_path 設定檔把 canvas / 輸出目錄導到暫存區。
"""
import json

from vds_sync.cli import main

CSS = """
:root { --primary-color: #3366ff; --spacing-md: 16px; }
.card { display: flex; background: #eeeeee; width: 300px; height: 200px; }
.card-title { color: #333333; font-size: 18px; }
"""


def write_config(tmp_path, **extra):
    cfg = {
        "canvasDataPath": str(tmp_path / "design" / "design-data.json"),
        "outputDir": str(tmp_path / "styles"),
    }
    cfg.update(extra)
    path = tmp_path / "vds-sync.config.json"
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return str(path)


class TestTokensCommand:

    def test_css_output(self, tmp_path, capsys):
        css = tmp_path / "tokens.css"
        css.write_text(CSS, encoding="utf-8")
        assert main(["--config", write_config(tmp_path), "tokens", str(css)]) == 0
        out = capsys.readouterr().out
        assert "--primary-color: #3366ff;" in out

    def test_json_output(self, tmp_path, capsys):
        css = tmp_path / "tokens.css"
        css.write_text(CSS, encoding="utf-8")
        assert main(["--config", write_config(tmp_path), "tokens", str(css), "--format", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["colors"]["primary-color"]["value"] == "#3366ff"

    def test_missing_file_fails(self, tmp_path, capsys):
        code = main(["--config", write_config(tmp_path), "tokens", str(tmp_path / "nope.css")])
        assert code == 1
        assert "❌" in capsys.readouterr().out


class TestSyncAndGenerate:

    def test_sync_then_generate(self, tmp_path, capsys):
        config = write_config(tmp_path)
        css = tmp_path / "app.css"
        css.write_text(CSS, encoding="utf-8")

        assert main(["--config", config, "sync", str(css)]) == 0
        document = json.loads((tmp_path / "design" / "design-data.json").read_text(encoding="utf-8"))
        assert {el["cssSelector"] for el in document["elements"]} == {".card", ".card-title"}

        assert main(["--config", config, "generate"]) == 0
        assert (tmp_path / "styles" / "components.css").exists()
        assert (tmp_path / "styles" / "utilities.css").exists()
        assert "✅ Generated" in capsys.readouterr().out

    def test_generate_output_override(self, tmp_path):
        config = write_config(tmp_path)
        out_dir = tmp_path / "dist"
        assert main(["--config", config, "generate", "--output", str(out_dir)]) == 0
        assert (out_dir / "utilities.css").exists()


class TestIngestCommand:

    def test_ingest_reports_counts(self, tmp_path, capsys):
        config = write_config(tmp_path)
        css = tmp_path / "app.css"
        css.write_text(CSS, encoding="utf-8")
        assert main(["--config", config, "ingest", str(css)]) == 0
        out = capsys.readouterr().out
        assert "🔄 Ingesting" in out
        assert "2 elements" in out

    def test_ingest_missing_file_exit_code(self, tmp_path, capsys):
        config = write_config(tmp_path)
        assert main(["--config", config, "ingest", str(tmp_path / "missing.css")]) == 1
        assert "❌" in capsys.readouterr().out
        assert not (tmp_path / "design" / "design-data.json").exists()
