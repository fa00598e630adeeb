from .analysis import AnalysisRecord, InvalidExpressionError, analyze, analyze_batch, sample_curve
from .config import DEFAULT_CONFIG, OVERLAY_COLORS, ScanConfig
from .derivatives import first_derivative, second_derivative
from .evaluator import compile_expression, evaluate
from .events import Event, EventQueue, emit, logging_sink
from .expression import Expression, normalize
from .scanner import Point, find_extrema, find_inflections, find_zeros

__version__ = "0.1.0"
