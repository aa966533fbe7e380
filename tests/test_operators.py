from __future__ import annotations

import pytest

from gamma_script.constants import CONSTANTS, constant_value, is_constant
from gamma_script.operators import FUNCTION_MARKER, OPEN_PAREN, OPERATORS, build_operator_tables


@pytest.mark.parametrize(
	"text,precedence",
	[
		("<-", 8),
		("->", 8),
		("||", 9),
		("&&", 10),
		("==", 11),
		("!=", 11),
		("<", 12),
		(">=", 12),
		("+", 13),
		("-", 13),
		("*", 14),
		("%", 14),
		("^", 15),
		(".", 20),
		(OPEN_PAREN, 21),
		(FUNCTION_MARKER, 1000),
	],
)
def test_binary_precedence(text, precedence):
	assert OPERATORS.binary[text].precedence == precedence


def test_unary_operators():
	assert set(OPERATORS.unary) == {"!", "+", "-"}
	assert all(d.precedence == 16 and not d.left_assoc for d in OPERATORS.unary.values())


def test_associativity():
	assert not OPERATORS.binary["^"].left_assoc
	assert OPERATORS.binary["-"].left_assoc


def test_lookup_is_split_by_arity():
	assert OPERATORS.find("!", binary=True) is None
	assert OPERATORS.find("*", binary=False) is None
	assert OPERATORS.find("-", binary=False).precedence == 16
	assert OPERATORS.find("-", binary=True).precedence == 13


def test_yields_to_respects_associativity():
	minus = OPERATORS.binary["-"]
	power = OPERATORS.binary["^"]
	assert minus.yields_to(OPERATORS.binary["+"])
	assert not minus.yields_to(OPERATORS.binary["&&"])
	assert not power.yields_to(power)
	assert power.yields_to(OPERATORS.unary["-"])


def test_tables_are_immutable():
	with pytest.raises(TypeError):
		OPERATORS.binary["+"] = OPERATORS.binary["-"]  # type: ignore[index]


def test_build_returns_equal_tables():
	assert dict(build_operator_tables().binary) == dict(OPERATORS.binary)


def test_constants():
	assert is_constant("PI") and is_constant("null")
	assert not is_constant("pi")
	assert constant_value("TRUE") == 1.0
	assert constant_value("false") == 0.0
	assert constant_value("NULL") is None
	assert constant_value("inf") == float("inf")
	with pytest.raises(TypeError):
		CONSTANTS["PI"] = 3.0  # type: ignore[index]
