"""
Utility functions for estimate and result import and export.

This module provides functions to load and save project estimates in CSV and
JSON formats, and to export simulation outputs (sample vectors and credible
intervals) for downstream reporting and plotting tools.
"""

from __future__ import annotations

import csv
import json
from typing import Any, Dict, List, Mapping, Sequence

from portcost.core import ProjectEstimate
from portcost.intervals import CredibleInterval
from portcost.simulation import PortfolioSimulation


_ESTIMATE_FIELDS = ["id", "low", "central", "high"]


def _estimate_from_record(record: Mapping[str, Any], where: str) -> ProjectEstimate:
    try:
        return ProjectEstimate(
            id=str(record["id"]),
            low=float(record["low"]),
            central=float(record["central"]),
            high=float(record["high"]),
        )
    except KeyError as e:
        raise ValueError(f"Invalid {where} format: missing field {e}")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid estimate value in {where}: {e}")


def load_estimates_from_csv(path: str) -> List[ProjectEstimate]:
    """
    Load project estimates from a CSV file.

    Args:
        path: Path to a CSV file with header id,low,central,high.

    Returns:
        List of ProjectEstimate records in file order. Ordering is not
        validated here; records are validated when simulated.

    Raises:
        FileNotFoundError: If the file is not found.
        ValueError: If a column is missing or a value is not numeric.
    """
    estimates: List[ProjectEstimate] = []
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            for row in reader:
                estimates.append(_estimate_from_record(row, "CSV"))
    except FileNotFoundError:
        raise FileNotFoundError(f"Estimates file not found: {path}")
    return estimates


def save_estimates_to_csv(estimates: Sequence[ProjectEstimate], path: str) -> None:
    """
    Save project estimates to a CSV file.
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_ESTIMATE_FIELDS)
        writer.writeheader()
        for e in estimates:
            writer.writerow(
                {"id": e.id, "low": e.low, "central": e.central, "high": e.high}
            )


def load_estimates_from_json(path: str) -> List[ProjectEstimate]:
    """
    Load project estimates from a JSON file.

    Args:
        path: Path to a JSON file of the form
            {"projects": [{"id": "P1", "low": 50, "central": 120, "high": 250}, ...]}

    Raises:
        FileNotFoundError: If the file is not found.
        ValueError: If the JSON is malformed or a record is incomplete.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"JSON file not found: {path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON format: {e}")

    if not isinstance(data, dict) or "projects" not in data:
        raise ValueError("JSON missing 'projects' key")
    return [_estimate_from_record(rec, "JSON") for rec in data["projects"]]


def save_estimates_to_json(estimates: Sequence[ProjectEstimate], path: str) -> None:
    data = {
        "projects": [
            {"id": e.id, "low": e.low, "central": e.central, "high": e.high}
            for e in estimates
        ]
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def save_samples_to_csv(run: PortfolioSimulation, path: str) -> None:
    """
    Save per-project samples and the total-cost sample to a CSV file.

    One row is written per scenario index, with one column per surviving
    project followed by a `total` column.
    """
    fieldnames = ["scenario"] + list(run.project_ids) + ["total"]
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(fieldnames)
        for k in range(run.n_samples):
            row: List[Any] = [k]
            row.extend(int(v) for v in run.sample_matrix[:, k])
            row.append(int(run.total[k]))
            writer.writerow(row)


def interval_to_dict(ci: CredibleInterval) -> Dict[str, Any]:
    return {
        "level": float(ci.level),
        "lower": float(ci.lower),
        "upper": float(ci.upper),
        "segments": [[float(lo), float(hi)] for lo, hi in ci.segments],
        "mass": float(ci.mass),
    }


def save_intervals_to_json(runs: Sequence[PortfolioSimulation], path: str) -> None:
    """
    Save credible intervals of one or more runs to a JSON file.

    The output maps each model name to a list of intervals, one per level.
    """
    data: Dict[str, Any] = {}
    for run in runs:
        data[str(run.model)] = [
            interval_to_dict(run.intervals[level]) for level in sorted(run.intervals)
        ]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
