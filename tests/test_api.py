import json
from pathlib import Path

import pytest

from ladle.api import RunRequest, run_from_csv, run_log_payload, write_run_log
from ladle.core.engine import SolverConfig
from ladle.core.errors import InvalidInput


def _write_csv(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_run_from_csv_sample(data_dir, tmp_path):
    req = RunRequest(
        input_path=str(data_dir / "steel_composition.csv"),
        total_weight=1000.0,
        out_dir=str(tmp_path / "out"),
    )
    out = run_from_csv(req)
    assert out.converged
    assert out.initial_weight == pytest.approx(1000.0)
    assert out.total_added > 0.0
    assert out.meta["balance_element"] == "Iron"
    files = out.meta["report_files"]
    assert len(files) == len(out.snapshots) + 1
    assert all(Path(f).exists() for f in files)


def test_run_from_csv_without_out_dir_writes_nothing(data_dir, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    out = run_from_csv(RunRequest(input_path=str(data_dir / "steel_composition.csv")))
    assert "report_files" not in out.meta
    assert not (tmp_path / "output").exists()


def test_run_from_csv_logs_skipped_rows(tmp_path, caplog):
    p = _write_csv(tmp_path / "c.csv", "Element,Initial,Final\nChromium,18,18\nNickel,oops,8\nIron,82,82\n")
    with caplog.at_level("WARNING", logger="ladle.api"):
        out = run_from_csv(RunRequest(input_path=str(p)))
    assert [w.row for w in out.warnings] == [2]
    assert any("Skipping invalid row 2" in r.getMessage() for r in caplog.records)
    assert out.converged


def test_run_from_csv_missing_balance_is_fatal(tmp_path):
    p = _write_csv(tmp_path / "c.csv", "Element,Initial,Final\nChromium,18,18\nNickel,8,8\n")
    with pytest.raises(InvalidInput):
        run_from_csv(RunRequest(input_path=str(p)))


def test_run_from_csv_custom_config(tmp_path):
    p = _write_csv(tmp_path / "c.csv", "element,initial,final\nSilicon,1,2\nAluminium,99,98\n")
    cfg = SolverConfig(balance_element="Aluminium", tolerance=0.05)
    out = run_from_csv(RunRequest(input_path=str(p), total_weight=200.0, config=cfg))
    assert out.converged
    assert out.meta["tolerance"] == 0.05


def test_write_run_log(tmp_path, data_dir):
    req = RunRequest(input_path=str(data_dir / "steel_composition.csv"))
    out = run_from_csv(req)
    path = write_run_log(str(tmp_path / "logs"), run_log_payload(req, out))
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    assert Path(path).name.startswith("run_") and path.endswith(".json")
    assert payload["converged"] is True
    assert payload["iterations"] == out.iterations
    assert payload["additions"][0]["iteration"] == 1
    assert payload["config"]["max_iterations"] == 10
