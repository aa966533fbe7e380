"""Source positions, diagnostics and the compilation error channel."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
	from .lexer import Token


class Severity(Enum):
	INFO = auto()
	WARNING = auto()
	ERROR = auto()


@dataclass(frozen=True)
class Position:
	line: int
	column: int
	index: int


@dataclass(frozen=True)
class Span:
	start: Position
	end: Position
	origin: Optional[str] = None

	def describe(self) -> str:
		origin = self.origin or "<script>"
		return f"{origin}:{self.start.line}:{self.start.column}"


@dataclass
class Diagnostic:
	severity: Severity
	message: str
	span: Optional[Span] = None
	hint: Optional[str] = None


class DiagnosticEngine:
	def __init__(self) -> None:
		self._items: List[Diagnostic] = []

	@property
	def items(self) -> List[Diagnostic]:
		return self._items

	def report(self, severity: Severity, message: str, span: Optional[Span] = None, hint: Optional[str] = None) -> None:
		self._items.append(Diagnostic(severity, message, span, hint))

	def report_error(self, error: "CompilationError") -> None:
		self.report(Severity.ERROR, error.message, error.span, hint=error.hint)


# ---------------------------------------------------------------------------
# Errors


class CompilationError(Exception):
	"""The single error kind raised by the lexer and the parser.

	Compilation stops at the first error; the token identifies where.
	"""

	def __init__(self, message: str, token: Optional["Token"] = None, span: Optional[Span] = None, hint: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.token = token
		self.span = span if span is not None else (token.span if token is not None else None)
		self.hint = hint

	@property
	def line(self) -> Optional[int]:
		return self.span.start.line if self.span else None

	@property
	def column(self) -> Optional[int]:
		return self.span.start.column if self.span else None

	@property
	def origin(self) -> Optional[str]:
		return self.span.origin if self.span else None

	def __str__(self) -> str:
		if self.span is None:
			return self.message
		return f"{self.span.describe()}: {self.message}"


class ReservedConstantError(CompilationError):
	"""A reserved constant name was used where a variable is required."""
