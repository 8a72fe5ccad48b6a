"""
Unit tests for checker combinators and leaf checkers.
"""

import pytest

from errors import InvalidFormatError
from validator.checkers import (
    MAX_SAFE_INTEGER,
    BigNumber,
    allow_null,
    allow_null_or_empty,
    array_of,
    check_boolean,
    check_hash,
    check_hex,
    check_number,
    check_string,
    parse_big_number,
)


class TestBigNumber:
    """Test BigNumber parsing."""

    @pytest.mark.parametrize("raw,expected", [
        (0, 0),
        (42, 42),
        (10 ** 30, 10 ** 30),
        ("1000000000000000000000000", 10 ** 24),
        ("-17", -17),
        ("0x1f", 31),
        ("-0x10", -16),
        (5.0, 5),
    ])
    def test_parse(self, raw, expected):
        number = parse_big_number(raw)
        assert isinstance(number, BigNumber)
        assert number == expected

    @pytest.mark.parametrize("raw", ["abc123", "#!@#!@#$%^^", "1.5", "", "0x", True, None, [], 1.5])
    def test_parse_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_big_number(raw)

    def test_behaves_like_int(self):
        number = BigNumber(7)
        assert number + 1 == 8
        assert repr(number) == "BigNumber(7)"


class TestCombinators:
    """Test null and array combinators."""

    def test_allow_null(self):
        checker = allow_null(check_string, "default")
        assert checker(None) == "default"
        assert checker("x") == "x"
        with pytest.raises(ValueError):
            checker(1)

    def test_allow_null_does_not_call_checker(self):
        calls = []
        checker = allow_null(lambda value: calls.append(value))
        checker(None)
        assert calls == []

    def test_allow_null_or_empty(self):
        checker = allow_null_or_empty(check_string)
        assert checker("") is None
        assert checker(None) is None
        assert checker("memo") == "memo"

    def test_array_of_keeps_order(self):
        checker = array_of(check_number)
        values = [str(i) for i in range(12)]
        assert checker(values) == list(range(12))

    @pytest.mark.parametrize("raw", ["abc", {"a": 1}, b"xy", 3])
    def test_array_of_rejects_non_arrays(self, raw):
        with pytest.raises(ValueError):
            array_of(check_number)(raw)

    def test_array_of_empty_and_tuple(self):
        checker = array_of(check_number)
        assert checker([]) == []
        assert checker(("1", 2)) == [1, 2]

    def test_array_of_reports_failing_index(self):
        with pytest.raises(InvalidFormatError) as exc_info:
            array_of(check_number)(["1", "2", "many"])

        assert exc_info.value.key == "2"
        assert exc_info.value.value == "many"


class TestLeafCheckers:
    """Test leaf checkers."""

    def test_check_hash(self):
        digest = "AB" * 32
        assert check_hash(digest) == "0x" + "ab" * 32
        assert check_hash("0x" + "cd" * 32) == "0x" + "cd" * 32

    def test_check_hash_requires_prefix(self):
        with pytest.raises(ValueError):
            check_hash("ab" * 32, require_prefix=True)

    @pytest.mark.parametrize("raw", ["0x1234", "0x" + "zz" * 32, 12])
    def test_check_hash_rejects(self, raw):
        with pytest.raises(ValueError):
            check_hash(raw)

    def test_check_hex_adds_prefix(self):
        assert check_hex("beef") == "0xbeef"

    def test_check_number_overflow(self):
        assert check_number(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
        with pytest.raises(ValueError):
            check_number(MAX_SAFE_INTEGER + 1)

    def test_check_number_narrows(self):
        value = check_number("12")
        assert type(value) is int

    @pytest.mark.parametrize("raw,expected", [(True, True), (False, False), ("true", True), ("false", False)])
    def test_check_boolean(self, raw, expected):
        assert check_boolean(raw) is expected

    @pytest.mark.parametrize("raw", [1, 0, "yes", None])
    def test_check_boolean_rejects(self, raw):
        with pytest.raises(ValueError):
            check_boolean(raw)
