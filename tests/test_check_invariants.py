"""Tests for tools/check_invariants.py."""

import importlib.util
import json
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"


@pytest.fixture(scope="module")
def tool():
    spec = importlib.util.spec_from_file_location(
        "check_invariants", ROOT / "tools" / "check_invariants.py",
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCheckInvariantsTool:
    def test_shipped_config_passes(self, tool, capsys) -> None:
        assert tool.check(CONFIG_DIR) == 0
        assert "Invariant check passed." in capsys.readouterr().out

    def test_missing_config_fails(self, tool, tmp_path: Path, capsys) -> None:
        assert tool.check(tmp_path) == 1
        assert "not found" in capsys.readouterr().out

    def test_inconsistent_config_lists_errors(self, tool, tmp_path: Path, capsys) -> None:
        params = json.loads((CONFIG_DIR / "registry_params.json").read_text(encoding="utf-8"))
        params["validators"]["required_approvals"] = 9
        params["administration"]["admin_id"] = ""
        (tmp_path / "registry_params.json").write_text(json.dumps(params), encoding="utf-8")

        assert tool.check(tmp_path) == 1
        out = capsys.readouterr().out
        assert "Invariant check failed:" in out
        assert "- validators.required_approvals" in out
        assert "- administration.admin_id must not be blank" in out
