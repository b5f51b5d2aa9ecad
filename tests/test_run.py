import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))
sys.path.append(str(ROOT))

import yaml

import run
from conftest import FAKE_ENGINE


def _write_config(tmp_path, **engine):
    config = {
        "engine": {"path": sys.executable, "args": [FAKE_ENGINE], **engine},
        "io": {"poll_interval": 0.001, "handshake_ticks": 5000},
        "logging": {"level": "WARNING"},
    }
    cfg_path = tmp_path / "engine.yaml"
    cfg_path.write_text(yaml.safe_dump(config))
    return str(cfg_path)


def test_probe_lists_identity_and_options(tmp_path, capsys):
    assert run.main(["--config", _write_config(tmp_path), "probe"]) == 0

    out = capsys.readouterr().out
    assert "Engine: FakeFish 1.0" in out
    assert "Author: Test Suite" in out
    assert "Hash (spin) default=16 [1..33554432]" in out
    assert "Clear Hash (button) default=None" in out


def test_bestmove_after_moves(tmp_path, capsys):
    cfg = _write_config(tmp_path)
    assert run.main(["--config", cfg, "bestmove", "--moves", "e2e4 e7e5", "--movetime", "10"]) == 0

    out = capsys.readouterr().out
    assert "FakeFish 1.0: Nf3 [g1f3] (ponder b8c6)" in out


def test_missing_engine_exits_with_error(tmp_path, capsys):
    cfg = _write_config(tmp_path)
    missing = str(tmp_path / "missing-engine")
    assert run.main(["--config", cfg, "--engine", missing, "probe"]) == 1
    assert "No engine available" in capsys.readouterr().out
