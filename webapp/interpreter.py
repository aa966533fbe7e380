from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from gamma_script import CompileSettings, HCode, Label, Literal, Name, Op, Opcode, Span
from gamma_script.hcode import PrecisionType, label_positions

EPSILON = 5.0e-12


class RuntimeIssue(Exception):
	def __init__(self, message: str, span: Optional[Span] = None) -> None:
		super().__init__(message)
		self.message = message
		self.span = span

	def __str__(self) -> str:
		return self.message


@dataclass
class RunArtifacts:
	output: str
	steps: int
	runtime_error: Optional[RuntimeIssue] = None
	variables: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _Address:
	name: str


def _fuzzy_zero(value: float) -> bool:
	return abs(value) < EPSILON


def _as_bool(value: Any) -> float:
	return 1.0 if value else 0.0


class HCodeInterpreter:
	"""
	A small stack machine for the h-code stream produced by `gamma_script`.

	Supported:
	- numbers, strings and null values
	- plain and array (dynamic name) variables, static variables, defined()
	- arithmetic, relational and logical operators, string concatenation
	- jumps, including the short-circuit forms
	- print with the configured print/display precision

	Diagram objects, commands and functions belong to the diagram engine
	and are reported as unsupported.

	Static variables live on the interpreter and keep their first value
	across runs.
	"""

	def __init__(self, *, max_steps: int = 50_000) -> None:
		self._max_steps = max_steps
		self._statics: Dict[str, Any] = {}
		self._reset()

	def _reset(self) -> None:
		self._variables: Dict[str, Any] = {}
		self._stack: List[Any] = []
		self._out: List[str] = []
		self._steps = 0
		self._span: Optional[Span] = None
		self._precision = 12

	def run(self, codes: Sequence[HCode], settings: Optional[CompileSettings] = None) -> RunArtifacts:
		self._reset()
		self._settings = settings if settings is not None else CompileSettings()
		self._precision = int(self._settings.display_precision)
		try:
			self._execute(codes)
			return RunArtifacts(output="".join(self._out), steps=self._steps, variables=self._snapshot())
		except RuntimeIssue as issue:
			return RunArtifacts(output="".join(self._out), steps=self._steps, runtime_error=issue, variables=self._snapshot())
		except (ArithmeticError, TypeError, ValueError) as e:
			issue = RuntimeIssue(f"Runtime error: {e}", self._span)
			return RunArtifacts(output="".join(self._out), steps=self._steps, runtime_error=issue, variables=self._snapshot())

	def _snapshot(self) -> Dict[str, Any]:
		return {**self._variables, **self._statics}

	def _tick(self) -> None:
		self._steps += 1
		if self._steps > self._max_steps:
			raise RuntimeIssue("Step limit exceeded (possible infinite loop).", self._span)

	def _execute(self, codes: Sequence[HCode]) -> None:
		labels = label_positions(codes)
		pc = 0
		while pc < len(codes):
			code = codes[pc]
			pc += 1
			if isinstance(code, Label):
				continue
			self._tick()
			if isinstance(code, Literal):
				self._stack.append(code.value.value if isinstance(code.value, Enum) else code.value)
			elif isinstance(code, Name):
				self._stack.append(code.name)
			else:
				target = self._execute_op(code)
				if target is not None:
					if target not in labels:
						raise RuntimeIssue(f"Jump to undefined label L{target}", self._span)
					pc = labels[target]

	# -- operations -----------------------------------------------------------

	def _execute_op(self, op: Op) -> Optional[int]:
		"""Run one opcode; returns a label id when control transfers."""
		code = op.code
		if code == Opcode.LINE_INFO:
			self._span = op.operand if isinstance(op.operand, Span) else None
			return None
		if code == Opcode.SET_PRECISION:
			precision = self._settings.print_precision if op.operand == PrecisionType.PRINT else self._settings.display_precision
			self._precision = int(precision)
			return None
		if code in _JUMPS:
			return self._jump(op)
		binary = _BINARY.get(code)
		if binary is not None:
			right = self._pop()
			left = self._pop()
			self._stack.append(binary(self, left, right))
			return None
		handler = _HANDLERS.get(code)
		if handler is None:
			raise RuntimeIssue(f"Unsupported h-code '{code.name}'", self._span)
		handler(self)
		return None

	def _jump(self, op: Op) -> Optional[int]:
		code = op.code
		if code == Opcode.JUMP:
			return op.target
		value = self._pop()
		truthy = self._truthy(value)
		if code == Opcode.JUMP_IF_TRUE:
			return op.target if truthy else None
		if code == Opcode.JUMP_IF_FALSE:
			return None if truthy else op.target
		# JUMP_AND / JUMP_OR keep the normalized operand for the AND/OR that follows
		self._stack.append(_as_bool(truthy))
		if code == Opcode.JUMP_OR:
			return op.target if truthy else None
		return None if truthy else op.target

	def _pop(self) -> Any:
		if not self._stack:
			raise RuntimeIssue("Stack underflow", self._span)
		return self._stack.pop()

	def _pop_name(self) -> str:
		name = self._pop()
		if not isinstance(name, str):
			raise RuntimeIssue(f"Expected a variable name, got {self._format(name)}", self._span)
		return name

	def _lookup(self, name: str) -> Any:
		if name in self._statics:
			return self._statics[name]
		if name in self._variables:
			return self._variables[name]
		raise RuntimeIssue(f"Undefined variable '{name}'.", self._span)

	def _fetch(self) -> None:
		self._stack.append(self._lookup(self._pop_name()))

	def _fetch_address(self) -> None:
		self._stack.append(_Address(self._pop_name()))

	def _dynamic_name(self) -> None:
		name = self._pop_name()
		index = self._pop()
		self._stack.append(f"{name}[{self._format(index)}]")

	def _defined(self) -> None:
		name = self._pop_name()
		self._stack.append(_as_bool(name in self._statics or name in self._variables))

	def _pop_assignment(self) -> tuple:
		value = self._pop()
		address = self._pop()
		if not isinstance(address, _Address):
			raise RuntimeIssue("Assignment target is not a variable", self._span)
		return address.name, value

	def _assign(self) -> None:
		name, value = self._pop_assignment()
		if name in self._statics:
			self._statics[name] = value
		else:
			self._variables[name] = value

	def _static_assign(self) -> None:
		name, value = self._pop_assignment()
		self._statics.setdefault(name, value)

	def _unary_minus(self) -> None:
		self._stack.append(-self._number(self._pop(), "-"))

	def _unary_plus(self) -> None:
		self._stack.append(self._number(self._pop(), "+"))

	def _not(self) -> None:
		self._stack.append(_as_bool(not self._truthy(self._pop())))

	def _print(self) -> None:
		self._out.append(self._format(self._pop()) + "\n")

	def _truthy(self, value: Any) -> bool:
		if value is None:
			return False
		if isinstance(value, float):
			return not _fuzzy_zero(value)
		if isinstance(value, int):
			return value != 0
		return True

	def _number(self, value: Any, operator: str) -> float:
		if isinstance(value, (int, float)) and not isinstance(value, bool):
			return float(value)
		raise RuntimeIssue(f"Invalid types for '{operator}' operator", self._span)

	def _format(self, value: Any) -> str:
		if value is None:
			return "null"
		if isinstance(value, str):
			return value
		if isinstance(value, (int, float)):
			number = float(value)
			if math.isnan(number):
				return "NaN"
			if math.isinf(number):
				return "Infinity" if number > 0 else "-Infinity"
			text = f"{number:.{max(self._precision, 1)}g}"
			return "0" if text == "-0" else text
		return str(value)

	# -- binary operators -----------------------------------------------------

	def _add(self, left: Any, right: Any) -> Any:
		if isinstance(left, str) or isinstance(right, str):
			return self._format(left) + self._format(right)
		return self._number(left, "+") + self._number(right, "+")

	def _sub(self, left: Any, right: Any) -> float:
		return self._number(left, "-") - self._number(right, "-")

	def _mult(self, left: Any, right: Any) -> float:
		return self._number(left, "*") * self._number(right, "*")

	def _div(self, left: Any, right: Any) -> float:
		den = self._number(right, "/")
		if den == 0:
			raise RuntimeIssue("Division by zero.", self._span)
		return self._number(left, "/") / den

	def _remainder(self, left: Any, right: Any) -> float:
		den = self._number(right, "%")
		if den == 0:
			raise RuntimeIssue("Division by zero.", self._span)
		return math.fmod(self._number(left, "%"), den)

	def _exp(self, left: Any, right: Any) -> float:
		return math.pow(self._number(left, "^"), self._number(right, "^"))

	def _equal(self, left: Any, right: Any) -> bool:
		if isinstance(left, (int, float)) and isinstance(right, (int, float)):
			return _fuzzy_zero(float(left) - float(right)) or left == right
		return left == right

	def _eq(self, left: Any, right: Any) -> float:
		return _as_bool(self._equal(left, right))

	def _ne(self, left: Any, right: Any) -> float:
		return _as_bool(not self._equal(left, right))

	def _compare(self, left: Any, right: Any, operator: str) -> int:
		if isinstance(left, str) and isinstance(right, str):
			return (left > right) - (left < right)
		diff = self._number(left, operator) - self._number(right, operator)
		if _fuzzy_zero(diff):
			return 0
		return 1 if diff > 0 else -1

	def _lt(self, left: Any, right: Any) -> float:
		return _as_bool(self._compare(left, right, "<") < 0)

	def _le(self, left: Any, right: Any) -> float:
		return _as_bool(self._compare(left, right, "<=") <= 0)

	def _gt(self, left: Any, right: Any) -> float:
		return _as_bool(self._compare(left, right, ">") > 0)

	def _ge(self, left: Any, right: Any) -> float:
		return _as_bool(self._compare(left, right, ">=") >= 0)

	def _and(self, left: Any, right: Any) -> float:
		return _as_bool(self._truthy(left) and self._truthy(right))

	def _or(self, left: Any, right: Any) -> float:
		return _as_bool(self._truthy(left) or self._truthy(right))


_JUMPS = frozenset({Opcode.JUMP, Opcode.JUMP_IF_TRUE, Opcode.JUMP_IF_FALSE, Opcode.JUMP_AND, Opcode.JUMP_OR})

_BINARY: Dict[Opcode, Callable[[HCodeInterpreter, Any, Any], Any]] = {
	Opcode.ADD: HCodeInterpreter._add,
	Opcode.SUB: HCodeInterpreter._sub,
	Opcode.MULT: HCodeInterpreter._mult,
	Opcode.DIV: HCodeInterpreter._div,
	Opcode.REMAINDER: HCodeInterpreter._remainder,
	Opcode.EXP: HCodeInterpreter._exp,
	Opcode.EQ: HCodeInterpreter._eq,
	Opcode.NE: HCodeInterpreter._ne,
	Opcode.LT: HCodeInterpreter._lt,
	Opcode.LE: HCodeInterpreter._le,
	Opcode.GT: HCodeInterpreter._gt,
	Opcode.GE: HCodeInterpreter._ge,
	Opcode.AND: HCodeInterpreter._and,
	Opcode.OR: HCodeInterpreter._or,
}

_HANDLERS: Dict[Opcode, Callable[[HCodeInterpreter], None]] = {
	Opcode.FETCH: HCodeInterpreter._fetch,
	Opcode.FETCH_ADDRESS: HCodeInterpreter._fetch_address,
	Opcode.DYNAMIC_NAME: HCodeInterpreter._dynamic_name,
	Opcode.DEFINED: HCodeInterpreter._defined,
	Opcode.ASSIGN: HCodeInterpreter._assign,
	Opcode.STATIC_ASSIGN: HCodeInterpreter._static_assign,
	Opcode.UNARY_MINUS: HCodeInterpreter._unary_minus,
	Opcode.UNARY_PLUS: HCodeInterpreter._unary_plus,
	Opcode.NOT: HCodeInterpreter._not,
	Opcode.PRINT: HCodeInterpreter._print,
}
