import pytest
import numpy as np
from harmonic_mapper import (
    AppState, EmpiricalSeries, SystemParameters, build_sample_matrix,
    resolve_active_functions,
)


def make_state(ids, n_min=0, n_max=10, series=None):
    return AppState(
        parameters=SystemParameters(n_min=n_min, n_max=n_max),
        active_function_ids=ids,
        real_world_data=series,
    )


def test_shape_and_alignment():
    m = build_sample_matrix(make_state(["m_n", "s_n"], n_min=3, n_max=8))
    assert m.n_steps == 6
    np.testing.assert_array_equal(m.indices, [3, 4, 5, 6, 7, 8])
    # catalog order, not request order
    assert [f.id for f in m.functions] == ["s_n", "m_n"]
    np.testing.assert_array_equal(m.values["s_n"], [3, 4, 5, 6, 7, 8])
    np.testing.assert_allclose(m.values["m_n"], 0.1 * np.arange(3, 9) ** 2)
    assert m.as_array().shape == (6, 2)


def test_unknown_and_duplicate_ids_ignored():
    funcs = resolve_active_functions(make_state(["s_n", "nope", "s_n", "t_n"]))
    assert [f.id for f in funcs] == ["s_n", "t_n"]


def test_real_world_appended_last():
    series = EmpiricalSeries("Tide", np.arange(5) * 2.0)
    m = build_sample_matrix(make_state(["real_world", "tesla_n"], n_max=6, series=series))
    assert [f.id for f in m.functions] == ["tesla_n", "real_world"]
    np.testing.assert_array_equal(m.values["real_world"], [0, 2, 4, 6, 8, 0, 0])


def test_real_world_needs_both_data_and_id():
    series = EmpiricalSeries("Tide", [1.0, 2.0])
    assert [f.id for f in resolve_active_functions(make_state(["s_n"], series=series))] == ["s_n"]
    assert [f.id for f in resolve_active_functions(make_state(["s_n", "real_world"]))] == ["s_n"]


@pytest.mark.parametrize("ids, n_min, n_max", [
    ([], 0, 10),
    (["nope"], 0, 10),
    (["s_n"], 5, 4),
    (["s_n", "t_n"], 10, -10),
])
def test_empty_cases(ids, n_min, n_max):
    m = build_sample_matrix(make_state(ids, n_min, n_max))
    assert m.is_empty
    assert m.n_steps == 0
    assert m.functions == []
    assert m.values == {}


def test_repeat_builds_are_identical():
    state = make_state(["s_n", "t_n", "x2_n", "tesla_n", "b_n"], n_max=300)
    a = build_sample_matrix(state)
    b = build_sample_matrix(state)
    assert a.values.keys() == b.values.keys()
    for k in a.values:
        np.testing.assert_array_equal(a.values[k], b.values[k])


def test_non_finite_columns_warn_and_pass_through():
    state = make_state(["s_n", "bb_n"], n_max=1900)
    with pytest.warns(RuntimeWarning, match="BB"):
        m = build_sample_matrix(state)
    assert np.isinf(m.values["bb_n"][-1])
    assert np.all(np.isfinite(m.values["s_n"]))
