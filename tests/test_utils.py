from __future__ import annotations

import csv
import json

import pytest

from portcost.config import SimulationConfig
from portcost.example_data import example_estimates
from portcost.simulation import compare_models, simulate_portfolio
from portcost.utils import (
    load_estimates_from_csv,
    load_estimates_from_json,
    save_estimates_to_csv,
    save_estimates_to_json,
    save_intervals_to_json,
    save_samples_to_csv,
)


def test_estimates_csv_round_trip(tmp_path) -> None:
    path = str(tmp_path / "estimates.csv")
    save_estimates_to_csv(example_estimates(), path)
    assert load_estimates_from_csv(path) == example_estimates()


def test_estimates_json_round_trip(tmp_path) -> None:
    path = str(tmp_path / "estimates.json")
    save_estimates_to_json(example_estimates(), path)
    assert load_estimates_from_json(path) == example_estimates()


def test_loading_reports_format_errors(tmp_path) -> None:
    missing = tmp_path / "missing.csv"
    missing.write_text("id,low,high\nA,1,3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_estimates_from_csv(str(missing))

    bad_value = tmp_path / "bad.csv"
    bad_value.write_text("id,low,central,high\nA,1,two,3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_estimates_from_csv(str(bad_value))

    with pytest.raises(FileNotFoundError):
        load_estimates_from_csv(str(tmp_path / "nope.csv"))

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{\"items\": []}", encoding="utf-8")
    with pytest.raises(ValueError):
        load_estimates_from_json(str(bad_json))


def test_samples_csv_has_one_row_per_scenario(tmp_path) -> None:
    run = simulate_portfolio(example_estimates(), "uniform", SimulationConfig(n_samples=50, seed=1))
    path = tmp_path / "samples.csv"
    save_samples_to_csv(run, str(path))

    with open(path, "r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["scenario", "P1", "P2", "P3", "total"]
    assert len(rows) == 51
    for row in rows[1:]:
        assert int(row[-1]) == sum(int(v) for v in row[1:-1])


def test_intervals_json_is_keyed_by_model(tmp_path) -> None:
    cfg = SimulationConfig(n_samples=500, seed=2)
    comparison = compare_models(example_estimates(), cfg, models=("uniform", "normal_with_central"))
    path = tmp_path / "intervals.json"
    save_intervals_to_json(list(comparison.runs.values()), str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"uniform", "normal_with_central"}
    levels = [entry["level"] for entry in data["uniform"]]
    assert levels == [0.89, 0.95]
    assert data["uniform"][0]["segments"][0][0] == data["uniform"][0]["lower"]
