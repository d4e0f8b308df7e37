"""Tests for the CLI interface."""
import json
import subprocess
import sys
from pathlib import Path

import pytest

from perimeter_ifc import __version__

from builders import single_storey_model

CLI = [sys.executable, "-m", "perimeter_ifc"]


def run_cli(*args: str, cwd: Path) -> dict:
    """Run CLI command and return parsed JSON output."""
    result = subprocess.run(
        [*CLI, *args],
        capture_output=True, text=True, cwd=str(cwd),
    )
    assert result.returncode == 0, f"CLI failed: {result.stderr}\n{result.stdout}"
    return json.loads(result.stdout)


def run_cli_expect_fail(*args: str, cwd: Path) -> dict:
    """Run CLI command expecting failure, return parsed JSON output."""
    result = subprocess.run(
        [*CLI, *args],
        capture_output=True, text=True, cwd=str(cwd),
    )
    assert result.returncode != 0
    return json.loads(result.stdout)


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    return single_storey_model().save(tmp_path / "house.json")


class TestExport:
    def test_export(self, tmp_path, model_file):
        out = tmp_path / "house.ifc"
        data = run_cli("export", str(model_file), "-o", str(out), cwd=tmp_path)
        assert data["ok"] is True
        assert data["output"] == str(out)
        assert data["storeys"] == 1
        assert data["walls"] == 4
        assert data["openings"] == 1
        assert data["slabs"] == 1
        assert out.read_text().startswith("ISO-10303-21;")

    def test_default_output_name(self, tmp_path, model_file):
        data = run_cli("export", str(model_file), "--validate", cwd=tmp_path)
        output = Path(data["output"])
        assert output.parent == tmp_path
        assert output.name.startswith("perimeter-ifc-")
        assert output.suffix == ".ifc"

    def test_settings_file(self, tmp_path, model_file):
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"project_name": "Hof Süd"}))
        out = tmp_path / "house.ifc"
        run_cli("export", str(model_file), "-o", str(out), "--settings", str(settings), cwd=tmp_path)
        assert "'Hof S\\X2\\00FC\\X0\\d'" in out.read_text()

    def test_missing_model(self, tmp_path):
        data = run_cli_expect_fail("export", str(tmp_path / "nope.json"), cwd=tmp_path)
        assert data["ok"] is False
        assert "not found" in data["error"]

    def test_invalid_model(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"storeys": [{"name": "x"}]}))
        data = run_cli_expect_fail("export", str(bad), cwd=tmp_path)
        assert data["ok"] is False
        assert "validation error" in data["error"]

    def test_empty_model(self, tmp_path):
        empty = tmp_path / "empty.json"
        empty.write_text("{}")
        data = run_cli_expect_fail("export", str(empty), cwd=tmp_path)
        assert data["ok"] is False
        assert "storeys" in data["error"]

    def test_missing_assembly_details(self, tmp_path):
        model = single_storey_model()
        model.wall_assemblies = []
        path = model.save(tmp_path / "broken.json")
        data = run_cli_expect_fail("export", str(path), cwd=tmp_path)
        assert data["details"]["assembly_id"] == "wall-strawbale"


class TestCheck:
    def test_check_exported_file(self, tmp_path, model_file):
        out = tmp_path / "house.ifc"
        run_cli("export", str(model_file), "-o", str(out), cwd=tmp_path)
        data = run_cli("check", str(out), cwd=tmp_path)
        assert data["ok"] is True
        assert data["dangling"] == []

    def test_check_dangling(self, tmp_path):
        broken = tmp_path / "broken.ifc"
        broken.write_text(
            "ISO-10303-21;\nHEADER;\nENDSEC;\nDATA;\n"
            "#1=IFCLOCALPLACEMENT($,#5);\nENDSEC;\nEND-ISO-10303-21;\n"
        )
        data = run_cli_expect_fail("check", str(broken), cwd=tmp_path)
        assert data["ok"] is False
        assert data["dangling"] == [{"entity": 1, "reference": 5}]


class TestVersion:
    def test_version(self, tmp_path):
        result = subprocess.run([*CLI, "version"], capture_output=True, text=True, cwd=str(tmp_path))
        assert result.returncode == 0
        assert result.stdout.strip() == f"perimeter-ifc v{__version__}"
