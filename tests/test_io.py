import logging

import pytest

from ladle.core.errors import InvalidInput
from ladle.core.io import (
    find_columns,
    load_solver_config,
    parse_percentage,
    parse_tabular_input,
    read_table,
    safe_yaml_load,
)
from ladle.core.models import ElementSpec

HEADER = ["Element", "Initial Composition (%)", "Final Composition (%)"]


def test_parse_rows_with_percent_signs_and_quotes():
    rows = [
        HEADER,
        ['"Chromium"', " 14.79% ", "17.00%"],
        ["Nickel", "2", "12"],
        ["Iron", "83.21%", '"71.00%"'],
    ]
    res = parse_tabular_input(rows)
    assert res.warnings == []
    assert res.specs == [
        ElementSpec("Chromium", 14.79, 17.0),
        ElementSpec("Nickel", 2.0, 12.0),
        ElementSpec("Iron", 83.21, 71.0),
    ]


def test_header_match_is_case_insensitive_and_any_order():
    cols = find_columns(["FINAL %", "ELEMENT name", "initial %", "notes"])
    assert cols == {"name": 1, "current": 2, "target": 0}


def test_header_missing_column_is_fatal():
    with pytest.raises(InvalidInput, match="final"):
        parse_tabular_input([["Element", "Initial"], ["Iron", "100"]])


def test_table_without_data_rows_is_fatal():
    with pytest.raises(InvalidInput):
        parse_tabular_input([HEADER])
    with pytest.raises(InvalidInput):
        parse_tabular_input([])


def test_bad_rows_are_skipped_with_warnings():
    rows = [
        HEADER,
        ["Chromium", "abc", "17"],       # row 1: not a number
        ["Nickel", "2"],                 # row 2: too short
        ["", "1", "1"],                  # row 3: no name
        ["", "", ""],                    # blank, skipped silently
        ["Manganese", "1.0%", "%"],      # row 5: empty after cleaning
        ["Iron", "83", "71"],
    ]
    res = parse_tabular_input(rows)
    assert res.specs == [ElementSpec("Iron", 83.0, 71.0)]
    assert [w.row for w in res.warnings] == [1, 2, 3, 5]
    assert str(res.warnings[0]).startswith("Skipping invalid row 1:")


def test_parser_does_not_log(caplog):
    with caplog.at_level(logging.DEBUG):
        parse_tabular_input([HEADER, ["Carbon", "x", "1"]])
    assert caplog.records == []


@pytest.mark.parametrize("text,expected", [("12", 12.0), (" 0.5% ", 0.5), ('"3.25%"', 3.25)])
def test_parse_percentage(text, expected):
    assert parse_percentage(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "%", "n/a", "nan", "inf"])
def test_parse_percentage_rejects(text):
    with pytest.raises(ValueError):
        parse_percentage(text)


def test_read_table_keeps_ragged_rows(tmp_path):
    p = tmp_path / "comp.csv"
    p.write_text("Element,Initial,Final\nChromium,14.79%,17%\nNickel,2\n\nIron,83.21,71,extra\n", encoding="utf-8")
    rows = read_table(p)
    assert rows[0] == ["Element", "Initial", "Final"]
    assert rows[2] == ["Nickel", "2"]
    res = parse_tabular_input(rows)
    assert [s.name for s in res.specs] == ["Chromium", "Iron"]
    assert len(res.warnings) == 1


def test_read_table_tolerates_invalid_utf8(tmp_path):
    p = tmp_path / "latin.csv"
    p.write_bytes(b"Element,Initial,Final\nChromium,1\xff,2\nNickel\xff,2,12\nIron,97,86\n")
    rows = read_table(p)
    assert len(rows) == 4
    res = parse_tabular_input(rows)
    # the bad byte spoils only its own cell
    assert [w.row for w in res.warnings] == [1]
    assert [s.name for s in res.specs] == ["Nickel\ufffd", "Iron"]


def test_read_table_strips_bom(tmp_path):
    p = tmp_path / "bom.csv"
    p.write_bytes(b"\xef\xbb\xbfElement,Initial,Final\nIron,100,100\n")
    assert read_table(p)[0][0] == "Element"


def test_read_table_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "nope.csv")


def test_sample_data_file_parses(data_dir):
    res = parse_tabular_input(read_table(data_dir / "steel_composition.csv"))
    assert [s.name for s in res.specs] == ["Chromium", "Nickel", "Iron"]
    assert res.warnings == []


def test_safe_yaml_load_missing_returns_default(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="ladle.core.io"):
        assert safe_yaml_load(tmp_path / "missing.yml", default={"a": 1}) == {"a": 1}
    assert any("not found" in r.getMessage() for r in caplog.records)


def test_load_solver_config_defaults():
    cfg = load_solver_config()
    assert cfg.tolerance == 0.01
    assert cfg.dilution_buffer_factor == 1.05
    assert cfg.max_iterations == 10
    assert cfg.balance_element == "Iron"
    assert cfg.significance_floor == 0.01


def test_load_solver_config_file_then_overrides(tmp_path):
    p = tmp_path / "solver.yml"
    p.write_text("solver:\n  tolerance: '0.001'\n  max_iterations: 20\n  balance_element: Copper\n", encoding="utf-8")
    cfg = load_solver_config(p, overrides={"max_iterations": 5, "tolerance": None})
    assert cfg.tolerance == pytest.approx(0.001)
    assert cfg.max_iterations == 5
    assert cfg.balance_element == "Copper"


def test_load_solver_config_top_level_mapping(tmp_path):
    p = tmp_path / "flat.yml"
    p.write_text("dilution_buffer_factor: 1.1\n", encoding="utf-8")
    assert load_solver_config(p).dilution_buffer_factor == pytest.approx(1.1)


@pytest.mark.parametrize("overrides", [
    {"tolerence": 0.1},
    {"max_iterations": "many"},
    {"max_iterations": 2.5},
    {"tolerance": -1},
])
def test_load_solver_config_rejects_bad_values(overrides):
    with pytest.raises(InvalidInput):
        load_solver_config(overrides=overrides)


def test_shipped_config_matches_defaults(repo_root):
    cfg = load_solver_config(repo_root / "configs" / "solver.yml")
    assert cfg == load_solver_config()
