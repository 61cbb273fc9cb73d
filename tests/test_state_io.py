import json
import pytest
import numpy as np
from harmonic_mapper import CANONICAL_STATE, AppState, MappingMode
from tools.state_io import load_series, load_state, save_state


def test_canonical_state():
    p = CANONICAL_STATE.parameters
    assert (p.n_min, p.n_max, p.phi, p.psi, p.alf, p.q, p.htf) == (0, 500, 3.14, 1.618, 0.0, 0.1, 1.0)
    assert CANONICAL_STATE.active_function_ids == ["s_n", "t_n", "x1_n", "tesla_n", "b_n"]
    assert CANONICAL_STATE.map_mode == MappingMode.SPIRAL


def test_save_and_load(tmp_path):
    state = AppState.from_dict({
        "parameters": {"nMin": 2, "nMax": 40, "phi": 0.5, "psi": 0.1, "alf": -1, "q": 0.3, "htf": 2},
        "activeFunctionIds": ["s_n", "real_world"],
        "mapMode": "Hypercube Projection",
        "realWorldData": {"name": "Tide", "data": [1.0, None, 3.5]},
    })
    path = save_state(state, tmp_path / "state.json")
    doc = json.loads(path.read_text())
    assert doc["parameters"]["nMax"] == 40
    assert doc["mapMode"] == "Hypercube Projection"

    loaded = load_state(path)
    assert loaded.map_mode == MappingMode.PCA
    assert loaded.parameters == state.parameters
    assert loaded.active_function_ids == ["s_n", "real_world"]
    assert loaded.real_world_data.name == "Tide"
    # null samples read back as zero through the lookup
    np.testing.assert_array_equal(loaded.real_world_data.lookup(np.arange(4)), [1.0, 0.0, 3.5, 0.0])


def test_missing_parameters_fall_back_to_canonical():
    state = AppState.from_dict({"parameters": {"nMax": 20}})
    assert state.parameters.n_max == 20
    assert state.parameters.phi == CANONICAL_STATE.parameters.phi
    assert state.active_function_ids == CANONICAL_STATE.active_function_ids
    assert state.active_function_ids is not CANONICAL_STATE.active_function_ids


def test_unknown_mode_rejected():
    with pytest.raises(ValueError, match="mapMode"):
        AppState.from_dict({"mapMode": "Torus"})


def test_invalid_json(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ValueError, match="bad.json"):
        load_state(bad)
    arr = tmp_path / "arr.json"
    arr.write_text("[1, 2]")
    with pytest.raises(ValueError, match="JSON object"):
        load_state(arr)


def test_load_series_csv(tmp_path):
    path = tmp_path / "sunspots.csv"
    path.write_text("# month,count\n1,83.0\n2,47.7\n3,81.4\n")
    series = load_series(path, column=1)
    assert series.name == "sunspots"
    np.testing.assert_array_equal(series.data, [83.0, 47.7, 81.4])


def test_load_series_whitespace(tmp_path):
    path = tmp_path / "values.txt"
    path.write_text("1.5\n2.5\n-3\n")
    series = load_series(path, name="Values")
    assert series.name == "Values"
    np.testing.assert_array_equal(series.data, [1.5, 2.5, -3.0])


def test_load_series_errors(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("alpha\nbeta\n")
    with pytest.raises(ValueError, match="words.txt"):
        load_series(path)
    path = tmp_path / "one.txt"
    path.write_text("1\n2\n")
    with pytest.raises(ValueError, match="column 3"):
        load_series(path, column=3)


def _strict_loads(text):
    def reject(token):
        raise ValueError(f"non-standard JSON constant {token}")
    return json.loads(text, parse_constant=reject)


def test_saved_state_is_strict_json(tmp_path):
    """Missing samples are written back as null, the way they were read."""
    state = AppState.from_dict({
        "parameters": {"alf": None},
        "realWorldData": {"name": "T", "data": [1.0, None, 2.0]},
    })
    path = save_state(state, tmp_path / "state.json")
    doc = _strict_loads(path.read_text())
    assert doc["realWorldData"]["data"] == [1.0, None, 2.0]
    assert doc["parameters"]["alf"] is None
    assert load_state(path).real_world_data.lookup(np.arange(3)).tolist() == [1.0, 0.0, 2.0]


def test_load_series_comma_in_comment(tmp_path):
    path = tmp_path / "values.txt"
    path.write_text("# level, metres\n1.5\n2.5\n")
    np.testing.assert_array_equal(load_series(path).data, [1.5, 2.5])
