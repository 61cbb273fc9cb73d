"""
Configuration documents and empirical series for the Harmonic Mapper.

A configuration document is the JSON form of an AppState:

    {
      "parameters": {"nMin": 0, "nMax": 500, "phi": 3.14, "psi": 1.618,
                     "alf": 0, "q": 0.1, "htf": 1.0},
      "activeFunctionIds": ["s_n", "t_n", "real_world"],
      "mapMode": "Log-Polar Spiral",
      "realWorldData": {"name": "Sunspots", "data": [83.0, 47.7, ...]}
    }

Usage:
    from tools.state_io import load_state, save_state, load_series

    state = load_state("harmonic_state.json")
    state = state.replace(real_world_data=load_series("sunspots.csv"))
    save_state(state, "harmonic_state.json")
"""

import json
import sys
import numpy as np
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_ROOT))
from harmonic_mapper import AppState, EmpiricalSeries


def load_state(path) -> AppState:
    path = Path(path)
    try:
        doc = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: not a valid JSON configuration ({e})") from e
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: configuration must be a JSON object")
    return AppState.from_dict(doc)


def save_state(state: AppState, path) -> Path:
    path = Path(path)
    path.write_text(json.dumps(state.to_dict(), indent=2, allow_nan=False))
    return path


def load_series(path, name=None, column=0) -> EmpiricalSeries:
    """Read one numeric column (comma or whitespace separated, '#' comments).

    Row i of the file becomes the value at index n = i.
    """
    path = Path(path)
    # Sniff the delimiter from data, not from comments
    data_lines = [line.split("#", 1)[0] for line in path.read_text().splitlines()]
    delimiter = "," if any("," in line for line in data_lines) else None
    try:
        data = np.loadtxt(path, delimiter=delimiter, comments="#", ndmin=2)
    except ValueError as e:
        raise ValueError(f"{path}: could not parse numeric series ({e})") from e
    if data.size and column >= data.shape[1]:
        raise ValueError(f"{path}: column {column} out of range "
                         f"({data.shape[1]} columns)")
    values = data[:, column] if data.size else np.zeros(0)
    return EmpiricalSeries(name=name or path.stem, data=values)
