"""
Client reference helpers.

A client reference is ``<portfolio><letter><3 digits>``, for example ``1A001``
or ``10M999``. The digits in front are the portfolio code, the letter is the
bucket the number was drawn from.
"""
import logging
import math
import re
import string
from typing import Optional

logger = logging.getLogger(__name__)

CLIENT_REF_PATTERN = re.compile(r"^(\d+)([A-Z])(\d{3})$")
ALPHABET = string.ascii_uppercase
DEFAULT_PORTFOLIO_CODE = 1


def normalize_portfolio_code(value) -> int:
    """
    Coerce ``value`` to a positive integer portfolio code.
    None, NaN, infinities and non-numeric input fall back to portfolio 1.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan

    if not math.isfinite(number):
        logger.warning("Portfolio code %r is not a number, using %s", value, DEFAULT_PORTFOLIO_CODE)
        return DEFAULT_PORTFOLIO_CODE

    code = int(number)
    if code < 1:
        logger.warning("Portfolio code %r is not positive, using %s", value, DEFAULT_PORTFOLIO_CODE)
        return DEFAULT_PORTFOLIO_CODE
    return code


def format_client_ref(portfolio_code: int, alpha: str, index: int) -> str:
    # 42 -> "042"; callers roll over before index reaches 1000
    return f"{portfolio_code}{alpha}{index:03d}"


def is_valid_client_ref(ref) -> bool:
    return isinstance(ref, str) and CLIENT_REF_PATTERN.match(ref) is not None


def extract_portfolio_code(ref) -> Optional[int]:
    if not is_valid_client_ref(ref):
        return None
    return int(CLIENT_REF_PATTERN.match(ref).group(1))


def parse_client_ref(ref):
    """Split a reference into (portfolio_code, alpha, index), or None if malformed."""
    if not is_valid_client_ref(ref):
        return None
    portfolio, alpha, index = CLIENT_REF_PATTERN.match(ref).groups()
    return int(portfolio), alpha, int(index)


def next_alpha(alpha: Optional[str]) -> Optional[str]:
    """Letter after ``alpha``; "A" when there is none yet, None past "Z"."""
    if not alpha:
        return ALPHABET[0]
    position = ALPHABET.index(alpha)
    if position + 1 >= len(ALPHABET):
        return None
    return ALPHABET[position + 1]
