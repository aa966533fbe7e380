"""The h-code instruction stream produced by the compiler.

Every element of the stream is exactly one of ``Literal``, ``Name``,
``Label`` or ``Op``. Jump opcodes refer to label ids; turning ids into
positions is left to whoever executes the stream.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Sequence, Union

from .diagnostics import Span


class Opcode(Enum):
	# Variables and properties
	FETCH = auto()
	FETCH_ADDRESS = auto()
	FETCH_PROP = auto()
	FETCH_PROP_ADDRESS = auto()
	DYNAMIC_NAME = auto()
	DEFINED = auto()
	# Assignments
	ASSIGN = auto()
	STATIC_ASSIGN = auto()
	ANIM_ASSIGN = auto()
	RANGE_ASSIGN = auto()
	TOGGLE_ASSIGN = auto()
	CHOICE_ASSIGN = auto()
	# Arithmetic
	ADD = auto()
	SUB = auto()
	MULT = auto()
	DIV = auto()
	REMAINDER = auto()
	EXP = auto()
	UNARY_PLUS = auto()
	UNARY_MINUS = auto()
	LORENTZ = auto()
	INV_LORENTZ = auto()
	# Relational and logical
	EQ = auto()
	NE = auto()
	LT = auto()
	LE = auto()
	GT = auto()
	GE = auto()
	AND = auto()
	OR = auto()
	NOT = auto()
	# Control flow
	JUMP = auto()
	JUMP_IF_TRUE = auto()
	JUMP_IF_FALSE = auto()
	JUMP_AND = auto()
	JUMP_OR = auto()
	# Calls and object constructors
	FUNCTION = auto()
	COORDINATE = auto()
	OBSERVER = auto()
	OBSERVER_FRAME = auto()
	FRAME = auto()
	AXIS_LINE = auto()
	ANGLE_LINE = auto()
	ENDPOINT_LINE = auto()
	PATH = auto()
	BOUNDS = auto()
	INTERVAL = auto()
	W_INITIALIZER = auto()
	W_SEGMENT = auto()
	# Commands and output
	PROPERTY = auto()
	PROPERTY_LIST = auto()
	COMMAND = auto()
	PRINT = auto()
	SET_PRECISION = auto()
	LINE_INFO = auto()


JUMP_OPCODES = frozenset({Opcode.JUMP, Opcode.JUMP_IF_TRUE, Opcode.JUMP_IF_FALSE, Opcode.JUMP_AND, Opcode.JUMP_OR})


# ---------------------------------------------------------------------------
# Argument enums carried as string literals


class PrecisionType(str, Enum):
	DISPLAY = "DISPLAY"
	PRINT = "PRINT"


class AtType(str, Enum):
	T = "T"
	TAU = "TAU"
	D = "D"
	V = "V"


class AxisType(str, Enum):
	X = "X"
	T = "T"


class LimitType(str, Enum):
	T = "T"
	TAU = "TAU"
	D = "D"
	V = "V"
	NONE = "NONE"


class IntervalType(str, Enum):
	T = "T"
	TAU = "TAU"
	D = "D"


# ---------------------------------------------------------------------------
# Stream elements


LiteralValue = Optional[Union[float, int, str]]


@dataclass(frozen=True)
class Literal:
	value: LiteralValue


@dataclass(frozen=True)
class Name:
	name: str


@dataclass(frozen=True)
class Label:
	id: int


@dataclass(frozen=True)
class Op:
	code: Opcode
	# Label id for jumps, PrecisionType for SET_PRECISION, Span for LINE_INFO.
	operand: Optional[Union[int, PrecisionType, Span]] = None

	@property
	def target(self) -> Optional[int]:
		if self.code in JUMP_OPCODES and isinstance(self.operand, int):
			return self.operand
		return None


HCode = Union[Literal, Name, Label, Op]


def is_numeric_literal(code: HCode) -> bool:
	return (
		isinstance(code, Literal)
		and isinstance(code.value, (int, float))
		and not isinstance(code.value, bool)
	)


def label_positions(codes: Sequence[HCode]) -> Dict[int, int]:
	"""Map each label id to the index of its marker in ``codes``."""
	positions: Dict[int, int] = {}
	for index, code in enumerate(codes):
		if isinstance(code, Label):
			positions[code.id] = index
	return positions


# ---------------------------------------------------------------------------
# Listing / JSON helpers


def _format_value(value: Any) -> str:
	if value is None:
		return "null"
	if isinstance(value, Enum):
		return value.value
	if isinstance(value, float):
		if math.isnan(value):
			return "NaN"
		if math.isinf(value):
			return "inf" if value > 0 else "-inf"
		return repr(value)
	if isinstance(value, str):
		return repr(value)
	return str(value)


def format_hcode(code: HCode) -> str:
	if isinstance(code, Literal):
		return _format_value(code.value)
	if isinstance(code, Name):
		return f"${code.name}"
	if isinstance(code, Label):
		return f"L{code.id}:"
	if code.code in JUMP_OPCODES:
		return f"{code.code.name} L{code.operand}"
	if code.code == Opcode.SET_PRECISION and code.operand is not None:
		return f"SET_PRECISION {_format_value(code.operand)}"
	if code.code == Opcode.LINE_INFO and isinstance(code.operand, Span):
		return f"LINE_INFO {code.operand.start.line}"
	return code.code.name


def format_hcodes(codes: Sequence[HCode]) -> List[str]:
	lines: List[str] = []
	for index, code in enumerate(codes):
		text = format_hcode(code)
		if isinstance(code, Label):
			lines.append(text)
		else:
			lines.append(f"{index:5d}    {text}")
	return lines


def hcode_to_json(code: HCode) -> Dict[str, Any]:
	if isinstance(code, Literal):
		value = code.value
		if isinstance(value, Enum):
			value = value.value
		elif isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
			value = _format_value(value)
		return {"kind": "literal", "value": value}
	if isinstance(code, Name):
		return {"kind": "name", "name": code.name}
	if isinstance(code, Label):
		return {"kind": "label", "id": code.id}
	data: Dict[str, Any] = {"kind": "op", "code": code.code.name}
	if isinstance(code.operand, Span):
		data["line"] = code.operand.start.line
	elif isinstance(code.operand, Enum):
		data["operand"] = code.operand.value
	elif code.operand is not None:
		data["operand"] = code.operand
	return data
