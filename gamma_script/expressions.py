"""Operator-precedence expression engine and object constructors.

Expressions are not parsed by recursive descent. A single pass over the
tokens moves operands straight to the output and holds operators on a stack
until precedence says they can be emitted. Because there is no expression
terminator, the engine decides token by token whether the expression can go
on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from .constants import constant_value, is_constant
from .diagnostics import CompilationError
from .hcode import AtType, AxisType, HCode, IntervalType, Label, LimitType, Literal, Name, Op, Opcode
from .lexer import Token
from .operators import FUNCTION_MARKER, OPEN_PAREN, OPERATORS, OperatorDescriptor

if TYPE_CHECKING:
	from .parser import Parser

BINARY_OPCODES: Dict[str, Opcode] = {
	"<-": Opcode.INV_LORENTZ,
	"->": Opcode.LORENTZ,
	"||": Opcode.OR,
	"&&": Opcode.AND,
	"==": Opcode.EQ,
	"!=": Opcode.NE,
	"<": Opcode.LT,
	">": Opcode.GT,
	"<=": Opcode.LE,
	">=": Opcode.GE,
	"+": Opcode.ADD,
	"-": Opcode.SUB,
	"*": Opcode.MULT,
	"/": Opcode.DIV,
	"%": Opcode.REMAINDER,
	"^": Opcode.EXP,
	".": Opcode.FETCH_PROP,
}

UNARY_OPCODES: Dict[str, Opcode] = {
	"!": Opcode.NOT,
	"+": Opcode.UNARY_PLUS,
	"-": Opcode.UNARY_MINUS,
}

_AT_TYPES = {"time": AtType.T, "tau": AtType.TAU, "distance": AtType.D, "velocity": AtType.V}
_LIMIT_TYPES = {"time": LimitType.T, "tau": LimitType.TAU, "distance": LimitType.D, "velocity": LimitType.V}
_AXIS_TYPES = {"x": AxisType.X, "t": AxisType.T}
_INTERVAL_TYPES = {"time": IntervalType.T, "tau": IntervalType.TAU, "distance": IntervalType.D}


@dataclass
class _PendingOp:
	token: Token
	descriptor: OperatorDescriptor
	# Short-circuit target, emitted right after the operator.
	label: Optional[int] = None


def _origin_coordinate() -> List[HCode]:
	return [Literal(0.0), Literal(0.0), Op(Opcode.COORDINATE)]


class ExpressionParser:
	def __init__(self, parser: "Parser") -> None:
		self.parser = parser

	@property
	def current(self) -> Token:
		return self.parser.cursor.current

	@property
	def peek(self) -> Token:
		return self.parser.cursor.peek

	def _advance(self) -> None:
		self.parser.cursor.advance()

	def is_expression_start(self) -> bool:
		token = self.current
		return (
			token.is_number
			or token.is_string
			or token.is_name()
			or token.is_delimiter("(")
			or token.is_delimiter("[")
			or (token.is_operator() and token.value in UNARY_OPCODES)
		)

	# -----------------------------------------------------------------------

	def parse(self) -> List[HCode]:
		codes: List[HCode] = []
		ops: List[_PendingOp] = []
		arg_counts: List[int] = []
		level = -1
		last: Optional[Token] = None
		start = self.current

		if not self.is_expression_start():
			self.parser.fail("Expected an expression")

		while True:
			token = self.current

			if token.is_name() and self.peek.is_delimiter("("):
				if token.value == "defined":
					codes.extend(self._parse_defined())
				else:
					ops.append(_PendingOp(token, OPERATORS.binary[FUNCTION_MARKER]))

			elif token.is_name():
				if is_constant(token.value):
					codes.append(Literal(constant_value(token.value)))
					if self.peek.is_delimiter("["):
						self.parser.fail("A constant cannot be used as an array")
					if self.peek.is_operator("."):
						self.parser.fail("You cannot dereference a constant")
				else:
					codes.extend(self.parser.parse_variable())
					if last is None or not last.is_operator("."):
						codes.append(Op(Opcode.FETCH))

			elif token.is_number or token.is_string:
				codes.append(Literal(token.value))

			elif token.is_delimiter("["):
				codes.extend(self._parse_object())

			elif token.is_delimiter(","):
				if level < 0:
					self.parser.fail("Unexpected ','")
				self._flush_to_paren(ops, codes)
				arg_counts[level] += 1

			elif token.is_delimiter("("):
				ops.append(_PendingOp(token, OPERATORS.binary[OPEN_PAREN]))
				level += 1
				if len(arg_counts) == level:
					arg_counts.append(0)
				else:
					arg_counts[level] = 0

			elif token.is_delimiter(")"):
				if level < 0:
					self.parser.fail("Unmatched ')'")
				if last is not None and not last.is_delimiter("("):
					arg_counts[level] += 1
				self._flush_to_paren(ops, codes)
				ops.pop()
				if ops and ops[-1].descriptor.text == FUNCTION_MARKER:
					function = ops.pop()
					codes.append(Name(function.token.value))
					codes.append(Literal(arg_counts[level] + 1))
					codes.append(Op(Opcode.FUNCTION))
				elif arg_counts[level] == 2:
					codes.append(Op(Opcode.COORDINATE))
				elif arg_counts[level] > 1:
					self.parser.fail("Invalid commas inside parentheses")
				level -= 1

			elif token.is_operator():
				self._push_operator(token, last, ops, codes)

			else:
				self.parser.fail(f"Unexpected '{token.lexeme}' in expression")

			# An item is a number, string, name, closed top-level parenthesis
			# or closed bracket. Items may be followed by an operator, names
			# by a top-level '(' and operators by an item or operator.
			done_token = self.current
			last_is_op = done_token.is_operator()
			last_is_item = (
				done_token.is_number
				or done_token.is_string
				or done_token.is_name()
				or (done_token.is_delimiter(")") and level < 0)
				or done_token.is_delimiter("]")
			)
			last_is_name = done_token.is_name()

			last = done_token
			self._advance()
			following = self.current

			cur_is_op = following.is_operator()
			cur_is_paren = following.is_delimiter("(") and level < 0
			cur_is_item = (
				following.is_number
				or following.is_string
				or following.is_name()
				or following.is_delimiter("(")
				or following.is_delimiter("[")
			)
			not_done = (
				level > -1
				or (last_is_name and cur_is_paren)
				or (last_is_item and cur_is_op)
				or (last_is_op and (cur_is_item or cur_is_op))
			)

			if (not_done or last_is_op) and following.is_eof:
				raise CompilationError(
					f"Premature end of file while processing an expression starting with '{start.lexeme}'",
					start,
				)
			if not not_done:
				if last_is_op:
					raise CompilationError(f"Incomplete expression starting with '{start.lexeme}'", start)
				while ops:
					self._emit(ops.pop(), codes)
				return codes

	def _push_operator(self, token: Token, last: Optional[Token], ops: List[_PendingOp], codes: List[HCode]) -> None:
		unary = last is None or last.is_delimiter("(") or last.is_delimiter(",") or last.is_operator()
		descriptor = OPERATORS.find(token.value, not unary)
		if descriptor is None:
			self.parser.fail(f"Unexpected operator '{token.value}'")

		while ops:
			top = ops[-1]
			if top.descriptor.text == OPEN_PAREN or not descriptor.yields_to(top.descriptor):
				break
			self._emit(ops.pop(), codes)

		pending = _PendingOp(token, descriptor)
		if token.value == "&&":
			pending.label = self.parser.state.new_label()
			codes.append(Op(Opcode.JUMP_AND, pending.label))
		elif token.value == "||":
			pending.label = self.parser.state.new_label()
			codes.append(Op(Opcode.JUMP_OR, pending.label))
		ops.append(pending)

	def _emit(self, pending: _PendingOp, codes: List[HCode]) -> None:
		text = pending.descriptor.text
		table = BINARY_OPCODES if pending.descriptor.binary else UNARY_OPCODES
		if text not in table:
			self.parser.fail(f"Unexpected '{pending.token.lexeme}' in expression", pending.token)
		codes.append(Op(table[text]))
		if pending.label is not None:
			codes.append(Label(pending.label))

	def _flush_to_paren(self, ops: List[_PendingOp], codes: List[HCode]) -> None:
		while ops and ops[-1].descriptor.text != OPEN_PAREN:
			self._emit(ops.pop(), codes)

	def _parse_defined(self) -> List[HCode]:
		"""``defined(variable)``; leaves the cursor on the ')'."""
		self._advance()
		self._advance()
		if not self.current.is_name():
			self.parser.fail("Expected a variable name inside the 'defined' function")
		codes = self.parser.parse_variable()
		self._advance()
		if not self.current.is_delimiter(")"):
			self.parser.fail("Expected a ')'")
		codes.append(Op(Opcode.DEFINED))
		return codes

	# -----------------------------------------------------------------------
	# Objects: "[kind ...]". Each leaves the cursor on the closing ']'.

	def _parse_object(self) -> List[HCode]:
		self._advance()
		token = self.current
		if not token.is_name():
			self.parser.fail("Invalid object")
		builders = {
			"observer": self._parse_observer,
			"frame": self._parse_frame,
			"line": self._parse_line,
			"path": self._parse_path,
			"bounds": self._parse_bounds,
			"interval": self._parse_interval,
		}
		builder = builders.get(token.value)
		if builder is None:
			self.parser.fail(f"Invalid object type '{token.value}'")
		codes = builder()
		if not self.current.is_delimiter("]"):
			self.parser.fail("Expected ']'")
		return codes

	def _is_keyword(self, *names: str) -> bool:
		return self.current.is_name() and self.current.value in names

	def _expect_keyword(self, name: str) -> None:
		if not self.current.is_name(name):
			self.parser.fail(f"Expected '{name}'")
		self._advance()

	def _parse_observer(self) -> List[HCode]:
		self._advance()
		codes = self._parse_worldline_initializer()
		if self._is_keyword("velocity", "acceleration"):
			count = 0
			while True:
				codes.extend(self._parse_worldline_segment())
				count += 1
				if not self.current.is_delimiter(","):
					break
				self._advance()
			# the initializer counts as one argument
			codes.append(Literal(count + 1))
		else:
			codes.append(Literal(1))
		codes.append(Op(Opcode.OBSERVER))
		return codes

	def _parse_worldline_initializer(self) -> List[HCode]:
		parts: Dict[str, List[HCode]] = {}
		while self._is_keyword("origin", "distance", "tau"):
			key = self.current.value
			if key in parts:
				self.parser.fail(f"Duplicate '{key}'")
			self._advance()
			parts[key] = self.parse()

		codes: List[HCode] = []
		codes.extend(parts.get("origin") or _origin_coordinate())
		codes.extend(parts.get("distance") or [Literal(0.0)])
		codes.extend(parts.get("tau") or [Literal(0.0)])
		codes.append(Op(Opcode.W_INITIALIZER))
		return codes

	def _parse_worldline_segment(self) -> List[HCode]:
		codes: List[HCode] = []
		seen = False
		if self.current.is_name("velocity"):
			self._advance()
			codes.extend(self.parse())
			seen = True
		else:
			codes.append(Literal(math.nan))
		if self.current.is_name("acceleration"):
			self._advance()
			codes.extend(self.parse())
			seen = True
		else:
			codes.append(Literal(0.0))
		if not seen:
			self.parser.fail("A worldline segment requires a velocity or acceleration")

		limit = _LIMIT_TYPES.get(self.current.value) if self.current.is_name() else None
		if limit is None:
			codes.extend([Literal(LimitType.NONE), Literal(math.nan)])
		else:
			self._advance()
			codes.append(Literal(limit))
			codes.extend(self.parse())
		codes.append(Op(Opcode.W_SEGMENT))
		return codes

	def _parse_frame(self) -> List[HCode]:
		self._advance()
		if self.current.is_name("observer"):
			self._advance()
			codes = self.parse()
			if self.current.is_name("at"):
				self._advance()
				at = _AT_TYPES.get(self.current.value) if self.current.is_name() else None
				if at is None:
					self.parser.fail("Expected 'time', 'tau', 'distance', or 'velocity'")
				self._advance()
				codes.append(Literal(at))
				codes.extend(self.parse())
			else:
				codes.extend([Literal(AtType.TAU), Literal(0.0)])
			codes.append(Op(Opcode.OBSERVER_FRAME))
			return codes

		parts: Dict[str, List[HCode]] = {}
		while self._is_keyword("origin", "velocity"):
			key = self.current.value
			if key in parts:
				self.parser.fail(f"The frame's {key} is set twice")
			self._advance()
			parts[key] = self.parse()
		if not parts:
			self.parser.fail("Expected 'observer', 'velocity', or 'origin'")
		codes = list(parts.get("origin") or _origin_coordinate())
		codes.extend(parts.get("velocity") or [Literal(0.0)])
		codes.append(Op(Opcode.FRAME))
		return codes

	def _parse_line(self) -> List[HCode]:
		self._advance()
		if self.current.is_name("axis"):
			self._advance()
			axis = _AXIS_TYPES.get(self.current.value) if self.current.is_name() else None
			if axis is None:
				self.parser.fail("Expected 'x' or 't'")
			self._advance()
			codes: List[HCode] = [Literal(axis)]
			codes.extend(self.parse())
			if self.current.is_name("offset"):
				self._advance()
				codes.extend(self.parse())
			else:
				codes.append(Literal(0.0))
			codes.append(Op(Opcode.AXIS_LINE))
			return codes
		if self.current.is_name("angle"):
			self._advance()
			codes = self.parse()
			self._expect_keyword("through")
			codes.extend(self.parse())
			codes.append(Op(Opcode.ANGLE_LINE))
			return codes
		if self.current.is_name("from"):
			self._advance()
			codes = self.parse()
			self._expect_keyword("to")
			codes.extend(self.parse())
			codes.append(Op(Opcode.ENDPOINT_LINE))
			return codes
		self.parser.fail("Expected 'axis', 'angle', or 'from'")

	def _parse_path(self) -> List[HCode]:
		codes: List[HCode] = []
		count = 0
		while True:
			self._advance()
			codes.extend(self.parse())
			count += 1
			if not self.current.is_delimiter(","):
				break
		codes.append(Literal(count))
		codes.append(Op(Opcode.PATH))
		return codes

	def _parse_bounds(self) -> List[HCode]:
		self._advance()
		codes = self.parse()
		codes.extend(self.parse())
		codes.append(Op(Opcode.BOUNDS))
		return codes

	def _parse_interval(self) -> List[HCode]:
		self._advance()
		kind = _INTERVAL_TYPES.get(self.current.value) if self.current.is_name() else None
		if kind is None:
			self.parser.fail("Expected 'time', 'tau' or 'distance'")
		self._advance()
		codes: List[HCode] = [Literal(kind)]
		codes.extend(self.parse())
		self._expect_keyword("to")
		codes.extend(self.parse())
		codes.append(Op(Opcode.INTERVAL))
		return codes
