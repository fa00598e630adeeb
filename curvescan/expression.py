"""
Expression normalizer.

Turns raw user text into the canonical form the evaluator works on:
whitespace stripped, superscript digits rewritten as ``^digits``,
``**`` folded into ``^``, decimal commas turned into dots, lower-cased.
"""

import logging
import re
from dataclasses import dataclass

from .config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

_SUPERSCRIPTS = str.maketrans("⁰¹²³⁴⁵⁶⁷⁸⁹", "0123456789")
_SUPERSCRIPT_RUN = re.compile(r"[⁰¹²³⁴⁵⁶⁷⁸⁹]+")
_WHITESPACE = re.compile(r"\s+")
# sin, cos and tan are admitted through their letters
_ALLOWED = re.compile(r"^[0-9x+\-*/^().sincota]*$")


@dataclass(frozen=True)
class Expression:
    original: str
    canonical: str
    valid: bool


def _superscripts_to_caret(s):
    return _SUPERSCRIPT_RUN.sub(lambda m: "^" + m.group(0).translate(_SUPERSCRIPTS), s)


def clean(raw):
    s = _WHITESPACE.sub("", raw)
    s = _superscripts_to_caret(s)
    return s.replace("**", "^").replace(",", ".").lower()


def validate(canonical, max_length=DEFAULT_CONFIG.max_length):
    return (
        bool(canonical)
        and len(canonical) <= max_length
        and _ALLOWED.match(canonical) is not None
        and canonical.count("(") == canonical.count(")")
    )


def normalize(raw, config=DEFAULT_CONFIG) -> Expression:
    """Clean and validate ``raw``; never raises."""
    original = "" if raw is None else str(raw)
    canonical = clean(original)
    valid = validate(canonical, config.max_length)
    if valid:
        logger.debug("normalized %r -> %r", original, canonical)
    else:
        logger.info("rejected expression %r", original)
    return Expression(original=original, canonical=canonical, valid=valid)
