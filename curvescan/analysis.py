"""
Analysis orchestrator.

``analyze`` runs the y-intercept evaluation and the three scanner passes for
one expression and returns an immutable ``AnalysisRecord``. ``analyze_batch``
does the same for an overlay of several expressions, all or nothing: every
expression is validated before any is analyzed.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, OVERLAY_COLORS
from .evaluator import evaluate
from .events import emit
from .expression import Expression, normalize
from .scanner import Point, find_extrema, find_inflections, find_zeros

logger = logging.getLogger(__name__)

MAX_CURVE_POINTS = 5000


class InvalidExpressionError(ValueError):
    """One or more expressions failed normalization."""

    def __init__(self, expressions):
        self.expressions = list(expressions)
        super().__init__("Invalid function: " + ", ".join(repr(e) for e in self.expressions))


# ---------------------- Precision helpers ----------------------
def maybe_round(x, round_final=True):
    """3-decimal value when round_final, else full precision; None passes through."""
    if x is None:
        return None
    return float(f"{x:.3f}") if round_final else float(x)


def _point_dict(p, round_final):
    return {"x": maybe_round(p.x, round_final), "y": maybe_round(p.y, round_final)}


@dataclass(frozen=True)
class AnalysisRecord:
    expression: str
    canonical: str
    y_intercept: Optional[float]
    zeros: Tuple[float, ...]
    maxima: Tuple[Point, ...]
    minima: Tuple[Point, ...]
    inflections: Tuple[Point, ...]
    color: Optional[str] = None

    def to_dict(self, round_final=True):
        return {
            "expression": self.expression,
            "canonical": self.canonical,
            "color": self.color,
            "y_intercept": maybe_round(self.y_intercept, round_final),
            "zeros": [maybe_round(z, round_final) for z in self.zeros],
            "maxima": [_point_dict(p, round_final) for p in self.maxima],
            "minima": [_point_dict(p, round_final) for p in self.minima],
            "inflections": [_point_dict(p, round_final) for p in self.inflections],
        }


def _as_expression(expression, config):
    if isinstance(expression, Expression):
        return expression
    return normalize(expression, config)


def _run(expr, config, color, sink):
    f = expr.canonical
    y0 = evaluate(f, 0.0)
    zeros = find_zeros(f, config, sink)
    maxima, minima = find_extrema(f, config, sink)
    inflections = find_inflections(f, config, sink)
    logger.info("analyzed %r: %d zeros, %d maxima, %d minima, %d inflections",
                expr.original, len(zeros), len(maxima), len(minima), len(inflections))
    return AnalysisRecord(
        expression=expr.original,
        canonical=f,
        y_intercept=y0,
        zeros=tuple(zeros),
        maxima=tuple(maxima),
        minima=tuple(minima),
        inflections=tuple(inflections),
        color=color,
    )


def analyze(expression, config=DEFAULT_CONFIG, color=None, sink=None) -> AnalysisRecord:
    """
    Analyze one expression (raw text or a normalized ``Expression``).

    Raises ``InvalidExpressionError`` if it does not normalize; evaluation
    problems never raise and show up as ``None`` or empty lists instead.
    """
    expr = _as_expression(expression, config)
    emit(sink, "info", "expression normalized", function="normalize", mode="analysis",
         original=expr.original, canonical=expr.canonical, valid=expr.valid)
    if not expr.valid:
        raise InvalidExpressionError([expr.original])
    return _run(expr, config, color, sink)


def _split_item(item):
    if isinstance(item, dict):
        return item.get("text"), item.get("color")
    if isinstance(item, (tuple, list)):
        text, color = item
        return text, color
    return item, None


def analyze_batch(items: Iterable, config=DEFAULT_CONFIG, sink=None) -> List[AnalysisRecord]:
    """
    Analyze several expressions for an overlay plot.

    ``items`` holds strings, ``(text, color)`` pairs or ``{"text", "color"}``
    mappings. If any expression is invalid the whole batch is rejected with
    an ``InvalidExpressionError`` naming every offender. Records keep the
    input order; missing colors are taken from ``OVERLAY_COLORS``.
    """
    pairs = [_split_item(item) for item in items]
    exprs = [normalize(text, config) for text, _ in pairs]
    invalid = [e.original for e in exprs if not e.valid]
    emit(sink, "info", "batch normalized", function="analyze_batch", mode="overlay",
         count=len(exprs), invalid=invalid)
    if invalid:
        logger.warning("rejected batch of %d: invalid %r", len(exprs), invalid)
        raise InvalidExpressionError(invalid)

    records = []
    for i, (expr, (_, color)) in enumerate(zip(exprs, pairs)):
        color = color or OVERLAY_COLORS[i % len(OVERLAY_COLORS)]
        records.append(_run(expr, config, color, sink))
    return records


def sample_curve(expression, x_min=DEFAULT_CONFIG.x_min, x_max=DEFAULT_CONFIG.x_max, points=800,
                 config=DEFAULT_CONFIG):
    """Evenly spaced samples for plotting; ``None`` marks an undefined y."""
    expr = _as_expression(expression, config)
    if not expr.valid:
        raise InvalidExpressionError([expr.original])
    if not x_min < x_max:
        raise ValueError(f"x_min must be below x_max (got {x_min}, {x_max}).")
    if not 2 <= points <= MAX_CURVE_POINTS:
        raise ValueError(f"points must be between 2 and {MAX_CURVE_POINTS}.")
    xs = np.linspace(x_min, x_max, points).tolist()
    ys = [evaluate(expr.canonical, x) for x in xs]
    return xs, ys
