"""
Feature scanner: zeros, local extrema and inflection points.

Each finder makes one left-to-right pass over a fixed grid on
``[config.x_min, config.x_max]``, so the cost is bounded by the window width
over the step and does not depend on the expression. Features closer than a
step apart can be missed. An undefined sample is a discontinuity: it is
skipped and breaks the chain of consecutive samples.
"""

import logging
import math
import time
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
from scipy.optimize import root_scalar

from .config import DEFAULT_CONFIG
from .derivatives import first_derivative, second_derivative
from .evaluator import evaluate
from .events import emit

logger = logging.getLogger(__name__)


class Point(NamedTuple):
    x: float
    y: float


# ---------------------- helpers ----------------------
def _grid(x_min, x_max, step):
    """Grid points x_min + i*step up to x_max, computed by index to avoid drift."""
    n = int(np.floor((x_max - x_min) / step + 1e-9))
    return (x_min + step * np.arange(n + 1)).tolist()


def _opposite(a, b):
    return (a < 0 < b) or (a > 0 > b)


def _append_separated(found, value, separation, key=lambda v: v):
    """Append unless within ``separation`` of the last accepted value."""
    if not found or abs(key(value) - key(found[-1])) > separation:
        found.append(value)


def _report(sink, function, samples, undefined, found, started):
    duration_ms = round((time.perf_counter() - started) * 1000.0, 3)
    logger.debug("%s: %d samples, %d undefined, %d found in %.3f ms",
                 function, samples, undefined, found, duration_ms)
    emit(sink, "debug", "scan pass finished", function=function, mode="analysis",
         samples=samples, undefined=undefined, found=found, duration_ms=duration_ms)


# ---------------------- root refinement ----------------------
def _newton(canonical, z, config):
    for _ in range(config.newton_iterations):
        fz = evaluate(canonical, z)
        dz = first_derivative(canonical, z, config.epsilon)
        if fz is None or dz is None or abs(dz) <= config.newton_min_slope:
            # z is unchanged, so every later iteration would skip as well
            break
        z = z - fz / dz
    return z if math.isfinite(z) else None


def _brentq(canonical, a, b):
    def f(t):
        y = evaluate(canonical, t)
        if y is None:
            raise ValueError(f"undefined at x={t}")
        return y

    try:
        sol = root_scalar(f, bracket=[a, b], method="brentq", maxiter=100)
    except (ValueError, RuntimeError) as e:
        logger.debug("brentq failed on [%s, %s]: %s", a, b, e)
        return None
    return sol.root if sol.converged else None


def refine_root(canonical, a, b, config=DEFAULT_CONFIG) -> Optional[float]:
    """Refine a root bracketed by the sign change between ``a`` and ``b``."""
    if config.zero_refinement == "brentq":
        return _brentq(canonical, a, b)
    return _newton(canonical, (a + b) / 2, config)


# ---------------------- finders ----------------------
def find_zeros(canonical: str, config=DEFAULT_CONFIG, sink=None) -> List[float]:
    started = time.perf_counter()
    step = config.zero_step
    xs = _grid(config.x_min, config.x_max, step)
    zeros = []
    undefined = 0
    prev = None  # last non-zero sample
    zero_at = None  # first sample of the current run of exact zeros
    for x in xs:
        y = evaluate(canonical, x)
        if y is None:
            undefined += 1
            prev = zero_at = None
            continue
        z = None
        if config.exact_zero_check and abs(y) < config.zero_tolerance:
            z = x
        if y == 0.0:
            if zero_at is None:
                zero_at = x
        else:
            if z is None and prev is not None and _opposite(prev, y):
                z = zero_at if zero_at is not None else refine_root(canonical, x - step, x, config)
            prev, zero_at = y, None
        if z is not None:
            _append_separated(zeros, z, config.zero_separation)
    _report(sink, "find_zeros", len(xs), undefined, len(zeros), started)
    # refinement may land left of an earlier root
    return sorted(zeros)


def find_extrema(canonical: str, config=DEFAULT_CONFIG, sink=None) -> Tuple[List[Point], List[Point]]:
    started = time.perf_counter()
    h = config.epsilon
    threshold = config.curvature_threshold
    xs = _grid(config.x_min, config.x_max, config.feature_step)
    maxima, minima = [], []
    undefined = 0
    for x in xs:
        y = evaluate(canonical, x)
        if y is None:
            undefined += 1
            continue
        d1 = first_derivative(canonical, x, h)
        if d1 is None or abs(d1) >= config.critical_slope:
            continue
        d2 = second_derivative(canonical, x, h)
        if d2 is None:
            continue
        if d2 < -threshold:
            _append_separated(maxima, Point(x, y), config.feature_separation, key=lambda p: p.x)
        elif d2 > threshold:
            _append_separated(minima, Point(x, y), config.feature_separation, key=lambda p: p.x)
    _report(sink, "find_extrema", len(xs), undefined, len(maxima) + len(minima), started)
    return maxima, minima


def find_inflections(canonical: str, config=DEFAULT_CONFIG, sink=None) -> List[Point]:
    """
    Points where f'' changes sign.

    Only samples with ``|f''| > curvature_threshold`` take part: a flip is a
    significant sample whose sign differs from the previous significant one.
    Noise-level samples in between are passed over, undefined ones break the
    chain. The abscissa is where the straight line through the two bracketing
    f'' samples crosses zero.
    """
    started = time.perf_counter()
    h = config.epsilon
    threshold = config.curvature_threshold
    xs = _grid(config.x_min, config.x_max, config.feature_step)
    points = []
    undefined = 0
    last = None  # (x, f''(x)) of the last significant sample
    for x in xs:
        d2 = second_derivative(canonical, x, h)
        if d2 is None:
            undefined += 1
            last = None
            continue
        if abs(d2) <= threshold:
            continue
        if last is not None and _opposite(last[1], d2):
            x0, d0 = last
            xi = x0 - d0 * (x - x0) / (d2 - d0)
            yi = evaluate(canonical, xi)
            if yi is not None:
                _append_separated(points, Point(xi, yi), config.feature_separation, key=lambda p: p.x)
        last = (x, d2)
    _report(sink, "find_inflections", len(xs), undefined, len(points), started)
    return points
