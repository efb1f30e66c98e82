import math

import pytest

from clients_core.services.references import (extract_portfolio_code, format_client_ref,
                                              is_valid_client_ref, next_alpha,
                                              normalize_portfolio_code, parse_client_ref)


@pytest.mark.parametrize("value", [None, math.nan, math.inf, -math.inf, "abc", ""])
def test_non_numeric_portfolio_falls_back_to_one(value):
    assert normalize_portfolio_code(value) == 1


@pytest.mark.parametrize("value, expected", [(3, 3), ("4", 4), (2.7, 2), (0, 1), (-5, 1)])
def test_numeric_portfolio_is_truncated_and_kept_positive(value, expected):
    assert normalize_portfolio_code(value) == expected


def test_format_pads_index_to_three_digits():
    assert format_client_ref(1, "B", 42) == "1B042"
    assert format_client_ref(10, "M", 999) == "10M999"
    assert format_client_ref(2, "A", 1) == "2A001"


def test_ref_validation_and_parsing():
    assert is_valid_client_ref("1A001")
    assert is_valid_client_ref("10M999")
    assert not is_valid_client_ref("1a001")
    assert not is_valid_client_ref("1AB01")
    assert not is_valid_client_ref("A001")
    assert not is_valid_client_ref("1A1000")
    assert not is_valid_client_ref(None)

    assert extract_portfolio_code("10M999") == 10
    assert extract_portfolio_code("junk") is None
    assert parse_client_ref("3H012") == (3, "H", 12)


def test_next_alpha_walks_the_alphabet_and_stops_after_z():
    assert next_alpha(None) == "A"
    assert next_alpha("A") == "B"
    assert next_alpha("Y") == "Z"
    assert next_alpha("Z") is None
