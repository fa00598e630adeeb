import math

import pytest

from curvescan import DEFAULT_CONFIG, find_extrema, find_inflections, find_zeros
from curvescan.scanner import _grid, refine_root


def test_grid_is_index_based_and_inclusive():
    xs = _grid(-10.0, 10.0, 0.1)
    assert len(xs) == 201
    assert xs[0] == -10.0
    assert xs[-1] == pytest.approx(10.0)
    assert xs[100] == 0.0


# ---------------------- zeros ----------------------
def test_zeros_of_shifted_parabola():
    zeros = find_zeros("x^2-4")
    assert zeros == pytest.approx([-2.0, 2.0], abs=0.01)


def test_no_zeros():
    assert find_zeros("x^2+5") == []


def test_zeros_of_sine_are_ascending():
    zeros = find_zeros("sin(x)")
    assert zeros == pytest.approx([k * math.pi for k in range(-3, 4)], abs=1e-6)


def test_irrational_roots_are_refined():
    assert find_zeros("x^2-2") == pytest.approx([-math.sqrt(2), math.sqrt(2)], abs=1e-9)


def test_brentq_refinement():
    config = DEFAULT_CONFIG.replace(zero_refinement="brentq")
    assert find_zeros("x^2-2", config) == pytest.approx([-math.sqrt(2), math.sqrt(2)], abs=1e-9)


def test_close_crossings_collapse_to_one():
    # roots at 0.25 and 0.55 are closer than the 0.5 separation
    zeros = find_zeros("(x-0.25)*(x-0.55)")
    assert zeros == pytest.approx([0.25], abs=1e-6)


def test_smaller_separation_keeps_both_crossings():
    config = DEFAULT_CONFIG.replace(zero_separation=0.2)
    zeros = find_zeros("(x-0.25)*(x-0.55)", config)
    assert zeros == pytest.approx([0.25, 0.55], abs=1e-6)


def test_root_on_grid_point_is_reported_exactly():
    # -2 and 2 are grid points where f is exactly 0
    assert find_zeros("x^2-4") == [-2.0, 2.0]


def test_small_valued_line_has_one_zero():
    assert find_zeros("x/100000") == [0.0]


def test_identically_zero_function_has_no_crossing():
    assert find_zeros("0*x") == []


def test_touch_point_is_not_a_crossing():
    assert find_zeros("(x-3)^6") == []


def test_exact_sample_check_is_opt_in():
    config = DEFAULT_CONFIG.replace(exact_zero_check=True)
    assert find_zeros("(x-3)^6", config) == pytest.approx([2.8], abs=1e-9)
    assert find_zeros("x^2-4", config) == [-2.0, 2.0]


def test_pole_is_not_a_zero():
    assert find_zeros("1/x") == []


def test_invalid_expression_has_no_zeros():
    assert find_zeros("2x") == []


def test_refine_root_with_flat_derivative_keeps_midpoint():
    config = DEFAULT_CONFIG.replace(newton_min_slope=1e9)
    assert refine_root("x-0.3", 0.2, 0.4, config) == pytest.approx(0.3)
    assert refine_root("x-0.3", 0.2, 0.6, config) == pytest.approx(0.4)


def test_scan_window_is_configurable():
    config = DEFAULT_CONFIG.replace(x_min=0.0, x_max=5.0)
    assert find_zeros("x^2-4", config) == pytest.approx([2.0], abs=0.01)


# ---------------------- extrema ----------------------
def test_parabola_has_one_minimum():
    maxima, minima = find_extrema("x^2")
    assert maxima == []
    assert len(minima) == 1
    assert minima[0].x == pytest.approx(0.0, abs=1e-9)
    assert minima[0].y == pytest.approx(0.0, abs=1e-9)


def test_downward_parabola_has_one_maximum():
    maxima, minima = find_extrema("-x^2+1")
    assert minima == []
    assert len(maxima) == 1
    assert tuple(maxima[0]) == pytest.approx((0.0, 1.0), abs=1e-9)


def test_cubic_with_two_critical_points():
    maxima, minima = find_extrema("x^3-3*x")
    assert len(maxima) == 1 and len(minima) == 1
    assert tuple(maxima[0]) == pytest.approx((-1.0, 2.0), abs=1e-3)
    assert tuple(minima[0]) == pytest.approx((1.0, -2.0), abs=1e-3)


def test_flat_function_is_inconclusive():
    assert find_extrema("5") == ([], [])


def test_line_has_no_extrema():
    assert find_extrema("2*x+1") == ([], [])


def test_close_extrema_collapse_per_kind():
    # minima near -0.22 and 0.22, maximum at 0
    maxima, minima = find_extrema("x^4-0.1*x^2")
    assert len(maxima) == 1
    assert tuple(maxima[0]) == pytest.approx((0.0, 0.0), abs=1e-9)
    # the 0.2 sample is within the separation of the -0.2 one
    assert len(minima) == 1
    assert minima[0].x == pytest.approx(-0.2, abs=1e-9)


def test_smaller_feature_separation_keeps_both_minima():
    config = DEFAULT_CONFIG.replace(feature_separation=0.3)
    maxima, minima = find_extrema("x^4-0.1*x^2", config)
    assert len(maxima) == 1
    assert [p.x for p in minima] == pytest.approx([-0.2, 0.2], abs=1e-9)


# ---------------------- inflections ----------------------
def test_cubic_inflection():
    points = find_inflections("x^3")
    assert len(points) == 1
    assert points[0].x == pytest.approx(0.0, abs=1e-6)
    assert points[0].y == pytest.approx(0.0, abs=1e-6)


def test_sine_inflections():
    points = find_inflections("sin(x)")
    assert [p.x for p in points] == pytest.approx([k * math.pi for k in range(-3, 4)], abs=0.01)
    assert [p.y for p in points] == pytest.approx([0.0] * 7, abs=0.01)


def test_close_inflections_collapse_to_one():
    # f'' = 12x^2 - 0.2 changes sign near -0.13 and 0.13
    points = find_inflections("x^4-0.1*x^2")
    assert len(points) == 1
    assert points[0].x < 0


def test_smaller_feature_separation_keeps_both_inflections():
    config = DEFAULT_CONFIG.replace(feature_separation=0.1)
    points = find_inflections("x^4-0.1*x^2", config)
    assert len(points) == 2
    assert points[0].x == pytest.approx(-points[1].x, abs=1e-6)


def test_parabola_has_no_inflection():
    assert find_inflections("x^2") == []


def test_pole_breaks_curvature_chain():
    assert find_inflections("1/x") == []


def test_scan_passes_report_events():
    events = []
    find_zeros("x^2-4", sink=events.append)
    find_extrema("x^2", sink=events.append)
    find_inflections("1/x", sink=events.append)
    assert [e.function for e in events] == ["find_zeros", "find_extrema", "find_inflections"]
    assert events[0].context["found"] == 2
    assert events[0].context["samples"] == 201
    assert events[2].context["undefined"] == 1
