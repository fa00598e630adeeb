# Curve discussion service: the JSON backend behind the function-analysis page.
# The numerical work lives in the curvescan package; this module only turns
# form input into calls and records into JSON.
#   • /analyze   zeros, extrema, inflection points (one expression or an overlay)
#   • /evaluate  f, f', f'' at a point
#   • /graph     samples for the pan/zoom canvas
#   • /logs      client-side log events

import json
import logging
import math
import os
import re

from flask import Flask, request, jsonify
from flask_cors import CORS
from sympy import E, N, SympifyError, pi, sympify

from curvescan import (
    DEFAULT_CONFIG,
    Event,
    InvalidExpressionError,
    analyze_batch,
    evaluate,
    first_derivative,
    second_derivative,
    logging_sink,
    normalize,
    sample_curve,
)
from curvescan.analysis import maybe_round
from curvescan.events import LEVELS

# ---------------------- Configuration ----------------------
DEBUG = os.environ.get("FLASK_DEBUG", "False").lower() == "true"
PORT = int(os.environ.get("PORT", 5000))
ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "*")
LOG_LEVEL = os.environ.get("CURVESCAN_LOG_LEVEL", "INFO").upper()

# widest window a request may ask the scanners to sweep
MAX_WINDOW = 200.0

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": ALLOWED_ORIGINS}})

# ---------------------- Request helpers ----------------------
_NUMERIC = re.compile(r"^(?:[0-9.+\-*/^()\s]|pi|e|sqrt)+$")
MAX_NUMERIC_LENGTH = 64

def _bool(data, key, default=True):
    v = data.get(key, default)
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "y", "t")
    return bool(v)

def _safe_float(x):
    """Numeric request field: a number or a constant expression such as 'pi/2'."""
    if isinstance(x, bool):
        raise ValueError("Expected a number.")
    s = str(x)
    if isinstance(x, (int, float)):
        val = float(x)
    elif len(s) > MAX_NUMERIC_LENGTH or not _NUMERIC.match(s):
        raise ValueError(f"Not a number: {s!r}")
    elif s.replace("**", "^").count("^") > 1:
        # evalf of a power tower does not terminate in useful time
        raise ValueError(f"At most one power allowed: {s!r}")
    else:
        try:
            val = float(N(sympify(s, locals={"pi": pi, "e": E}, evaluate=False)))
        except (SympifyError, TypeError, AttributeError, OverflowError, ZeroDivisionError,
                RecursionError) as e:
            raise ValueError(f"Not a number: {s!r}") from e
    if not math.isfinite(val):
        raise ValueError(f"Not a finite number: {s!r}")
    return val

def _scan_config(d):
    """DEFAULT_CONFIG with an optional x_min/x_max window from the request."""
    x_min = _safe_float(d['x_min']) if d.get('x_min') is not None else DEFAULT_CONFIG.x_min
    x_max = _safe_float(d['x_max']) if d.get('x_max') is not None else DEFAULT_CONFIG.x_max
    if x_max - x_min > MAX_WINDOW:
        raise ValueError(f"Window wider than {MAX_WINDOW:g}.")
    if (x_min, x_max) == (DEFAULT_CONFIG.x_min, DEFAULT_CONFIG.x_max):
        return DEFAULT_CONFIG
    return DEFAULT_CONFIG.replace(x_min=x_min, x_max=x_max)

def _json_body():
    d = request.get_json(silent=True)
    return d if isinstance(d, dict) else {}

def _invalid(e):
    return jsonify({"error": "Invalid function.", "invalid": e.expressions}), 400

# ---------------------- Health Check ----------------------
@app.route('/', methods=['GET'])
def health_check():
    return jsonify({"status": "Curve analysis service is online and ready!"})

# ---------------------- Normalize ----------------------
@app.route('/normalize', methods=['POST'])
def normalize_endpoint():
    d = _json_body()
    expression = d.get('expression')
    if expression is None:
        return jsonify({"error": "Invalid request. Please provide an 'expression'."}), 400
    expr = normalize(expression)
    return jsonify({"original": expr.original, "canonical": expr.canonical, "valid": expr.valid})

# ---------------------- Evaluate at a point ----------------------
@app.route('/evaluate', methods=['POST'])
def evaluate_endpoint():
    d = _json_body()
    round_final = _bool(d, "round_final", True)
    expression, point = d.get('expression'), d.get('x')
    if not expression or point is None:
        return jsonify({"error": "Provide 'expression' and 'x'."}), 400
    expr = normalize(expression)
    if not expr.valid:
        return _invalid(InvalidExpressionError([expr.original]))
    try:
        x = _safe_float(point)
    except ValueError as e:
        return jsonify({"error": f"Invalid point. {e}"}), 400
    f = expr.canonical
    return jsonify({
        "result": maybe_round(evaluate(f, x), round_final),
        "first_derivative": maybe_round(first_derivative(f, x), round_final),
        "second_derivative": maybe_round(second_derivative(f, x), round_final),
    })

# ---------------------- Analysis (single or overlay) ----------------------
@app.route('/analyze', methods=['POST'])
def analyze_endpoint():
    """
    JSON: {"expression": "x^2-4", "color": "#0072B2"}
       or {"expressions": [{"text": "x^2"}, {"text": "sin(x)", "color": "red"}]}
    Optional: "round_final", "x_min", "x_max".
    """
    d = _json_body()
    round_final = _bool(d, "round_final", True)
    items = d.get('expressions')
    if items is None and d.get('expression') is not None:
        items = [{"text": d.get('expression'), "color": d.get('color')}]
    if not items or not isinstance(items, list):
        return jsonify({"error": "Provide 'expression' or a non-empty 'expressions' list."}), 400
    try:
        config = _scan_config(d)
        records = analyze_batch(items, config, sink=logging_sink)
    except InvalidExpressionError as e:
        return _invalid(e)
    except (ValueError, TypeError) as e:
        return jsonify({"error": f"Analysis failed: {e}"}), 400
    return jsonify({"records": [r.to_dict(round_final) for r in records]})

# ---------------------- Graph samples ----------------------
@app.route('/graph', methods=['POST'])
def graph_endpoint():
    d = _json_body()
    expression = d.get('expression')
    if not expression:
        return jsonify({"error": "Invalid request. Please provide an 'expression'."}), 400
    try:
        x_min = _safe_float(d.get('x_min', DEFAULT_CONFIG.x_min))
        x_max = _safe_float(d.get('x_max', DEFAULT_CONFIG.x_max))
        points = int(d.get('points', 800))
        xs, ys = sample_curve(expression, x_min, x_max, points)
    except InvalidExpressionError as e:
        return _invalid(e)
    except (ValueError, TypeError) as e:
        return jsonify({"error": f"Graph sampling failed: {e}"}), 400
    return jsonify({"x": xs, "y": ys})

# ---------------------- Client log events ----------------------
@app.route('/logs', methods=['POST'])
def client_log():
    """
    JSON: {"level":"info","message":"Seite geladen","function":"DOMContentLoaded",
           "mode":"page_load","context":{...} or "<json string>","timestamp":"..."}
    """
    d = _json_body()
    level = str(d.get('level', '')).lower()
    message = d.get('message')
    if level not in LEVELS or not message:
        return jsonify({"error": f"Provide 'message' and a 'level' out of {', '.join(LEVELS)}."}), 400
    context = d.get('context') or {}
    if isinstance(context, str):
        try:
            context = json.loads(context)
        except ValueError:
            context = {"raw": context}
    if not isinstance(context, dict):
        context = {"value": context}
    fields = dict(level=level, message=str(message), function=str(d.get('function') or ''),
                  mode=str(d.get('mode') or ''), context=context)
    if d.get('timestamp'):
        fields['timestamp'] = str(d['timestamp'])
    logging_sink(Event(**fields), name="curvescan.client")
    return jsonify({"status": "ok"})

# ---------------------- Error handlers ----------------------
@app.errorhandler(404)
def not_found(error):
    return jsonify({"error": "Endpoint not found"}), 404

@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({"error": "Method not allowed"}), 405

# ---------------------- Run ----------------------
if __name__ == '__main__':
    # In production behind Gunicorn, this block is ignored.
    logger.info("Starting curve analysis service on port %d", PORT)
    app.run(host='0.0.0.0', port=PORT, debug=DEBUG)
