"""Operator precedence and associativity tables for the expression engine."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

FUNCTION_MARKER = "FUNC"
OPEN_PAREN = "("


@dataclass(frozen=True)
class OperatorDescriptor:
	text: str
	left_assoc: bool
	binary: bool
	# Lower values bind looser.
	precedence: int

	def yields_to(self, top: "OperatorDescriptor") -> bool:
		"""True when ``top`` must be flushed before this operator is pushed."""
		if self.left_assoc:
			return self.precedence <= top.precedence
		return self.precedence < top.precedence


@dataclass(frozen=True)
class OperatorTables:
	binary: Mapping[str, OperatorDescriptor]
	unary: Mapping[str, OperatorDescriptor]

	def find(self, text: str, binary: bool) -> Optional[OperatorDescriptor]:
		table = self.binary if binary else self.unary
		return table.get(text)


_DESCRIPTORS = (
	OperatorDescriptor("<-", True, True, 8),
	OperatorDescriptor("->", True, True, 8),
	OperatorDescriptor("||", True, True, 9),
	OperatorDescriptor("&&", True, True, 10),
	OperatorDescriptor("==", True, True, 11),
	OperatorDescriptor("!=", True, True, 11),
	OperatorDescriptor("<", True, True, 12),
	OperatorDescriptor(">", True, True, 12),
	OperatorDescriptor("<=", True, True, 12),
	OperatorDescriptor(">=", True, True, 12),
	OperatorDescriptor("+", True, True, 13),
	OperatorDescriptor("-", True, True, 13),
	OperatorDescriptor("*", True, True, 14),
	OperatorDescriptor("/", True, True, 14),
	OperatorDescriptor("%", True, True, 14),
	OperatorDescriptor("^", False, True, 15),
	OperatorDescriptor("!", False, False, 16),
	OperatorDescriptor("+", False, False, 16),
	OperatorDescriptor("-", False, False, 16),
	OperatorDescriptor(".", True, True, 20),
	OperatorDescriptor(OPEN_PAREN, False, True, 21),
	OperatorDescriptor(FUNCTION_MARKER, True, True, 1000),
)


def build_operator_tables() -> OperatorTables:
	binary = {d.text: d for d in _DESCRIPTORS if d.binary}
	unary = {d.text: d for d in _DESCRIPTORS if not d.binary}
	return OperatorTables(binary=MappingProxyType(binary), unary=MappingProxyType(unary))


OPERATORS = build_operator_tables()
