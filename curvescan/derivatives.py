from typing import Optional

from .config import DEFAULT_CONFIG
from .evaluator import evaluate

# Fixed-step central differences. h trades truncation error against
# cancellation; values near the scanner thresholds are approximate.


def first_derivative(canonical: str, x: float, h: float = DEFAULT_CONFIG.epsilon) -> Optional[float]:
    y1, y2 = evaluate(canonical, x + h), evaluate(canonical, x - h)
    if y1 is None or y2 is None:
        return None
    return (y1 - y2) / (2 * h)


def second_derivative(canonical: str, x: float, h: float = DEFAULT_CONFIG.epsilon) -> Optional[float]:
    y0 = evaluate(canonical, x)
    y1, y2 = evaluate(canonical, x + h), evaluate(canonical, x - h)
    if y0 is None or y1 is None or y2 is None:
        return None
    return (y1 - 2 * y0 + y2) / (h * h)
