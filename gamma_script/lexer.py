"""Script lexer: converts script text into a token list ending with EOF."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, List, Optional, Tuple

from .diagnostics import CompilationError, Position, Span

logger = logging.getLogger(__name__)


class TokenKind(Enum):
	NUMBER = auto()
	STRING = auto()
	NAME = auto()
	OPERATOR = auto()
	DELIMITER = auto()
	EOF = auto()


OPERATOR_CHARS = "+-*/^.<>!&|%="
DELIMITER_CHARS = ";,:=[](){}"
DIGITS = "0123456789"

TWO_CHAR_OPERATORS = ("&&", "||", "!=", "==", "<=", ">=", "<-", "->")

# Operator characters that never form an operator on their own.
NOT_SINGLE_OPERATORS = "&|="


@dataclass(frozen=True)
class Token:
	kind: TokenKind
	lexeme: str
	span: Span
	value: Any = None
	# Origins of the include statements that spliced this token in, outermost first.
	includes: Tuple[str, ...] = ()

	@property
	def origin(self) -> Optional[str]:
		return self.span.origin

	def is_name(self, name: Optional[str] = None) -> bool:
		return self.kind == TokenKind.NAME and (name is None or self.value == name)

	def is_delimiter(self, char: Optional[str] = None) -> bool:
		return self.kind == TokenKind.DELIMITER and (char is None or self.value == char)

	def is_operator(self, text: Optional[str] = None) -> bool:
		return self.kind == TokenKind.OPERATOR and (text is None or self.value == text)

	@property
	def is_number(self) -> bool:
		return self.kind == TokenKind.NUMBER

	@property
	def is_string(self) -> bool:
		return self.kind == TokenKind.STRING

	@property
	def is_eof(self) -> bool:
		return self.kind == TokenKind.EOF


def _is_digit(ch: str) -> bool:
	# ASCII only
	return ch != "" and ch in DIGITS


def normalize_newlines(source: str) -> str:
	return source.replace("\r\n", "\n").replace("\r", "\n")


class Lexer:
	def __init__(self, source: str, origin: Optional[str] = None, includes: Tuple[str, ...] = ()) -> None:
		self.source = normalize_newlines(source)
		self.origin = origin
		self.includes = includes
		self.length = len(self.source)
		self.index = 0
		self.line = 1
		self.column = 1

	def tokenize(self) -> List[Token]:
		tokens: List[Token] = []
		while not self._is_eof():
			ch = self._peek()
			next_ch = self._peek_next()
			if ch == "/" and next_ch == "/":
				self._consume_line_comment()
			elif ch == "/" and next_ch == "*":
				self._consume_block_comment()
			elif ch == "\n":
				self._advance()
			elif ch in OPERATOR_CHARS and self._operator_ahead() is not None:
				tokens.append(self._consume_operator())
			elif ch in DELIMITER_CHARS:
				start = self._current_position()
				self._advance()
				tokens.append(self._make_token(TokenKind.DELIMITER, ch, start, ch))
			elif ch == "'" or ch == '"':
				tokens.append(self._consume_string())
			elif ch.isalpha() or ch == "_":
				tokens.append(self._consume_name())
			elif _is_digit(ch) or (ch == "." and _is_digit(next_ch)):
				tokens.append(self._consume_number())
			elif ch.isspace():
				self._advance()
			else:
				start = self._current_position()
				span = Span(start, Position(start.line, start.column + 1, start.index + 1), self.origin)
				raise CompilationError(f"Invalid character : '{ch}'", span=span)
		tokens.append(self._make_token(TokenKind.EOF, "", self._current_position(), ""))
		return tokens

	def _consume_line_comment(self) -> None:
		while not self._is_eof() and self._peek() != "\n":
			self._advance()

	def _consume_block_comment(self) -> None:
		self._advance()
		self._advance()
		while not self._is_eof():
			if self._peek() == "*" and self._peek_next() == "/":
				self._advance()
				self._advance()
				return
			self._advance()

	def _operator_ahead(self) -> Optional[str]:
		ch = self._peek()
		next_ch = self._peek_next()
		if ch + next_ch in TWO_CHAR_OPERATORS:
			return ch + next_ch
		if ch in NOT_SINGLE_OPERATORS or (ch == "." and _is_digit(next_ch)):
			return None
		return ch

	def _consume_operator(self) -> Token:
		start = self._current_position()
		operator = self._operator_ahead() or ""
		for _ in operator:
			self._advance()
		return self._make_token(TokenKind.OPERATOR, operator, start, operator)

	def _consume_string(self) -> Token:
		start = self._current_position()
		delimiter = self._advance()
		chars: List[str] = []
		while True:
			if self._is_eof():
				logger.warning("Unterminated string at %s:%d:%d", self.origin or "<script>", start.line, start.column)
				break
			ch = self._advance()
			if ch == delimiter:
				break
			if ch == "\\":
				if self._is_eof():
					logger.warning("Unterminated string at %s:%d:%d", self.origin or "<script>", start.line, start.column)
					break
				esc = self._advance()
				chars.append("\n" if esc == "n" else esc)
			else:
				chars.append(ch)
		lexeme = self.source[start.index : self.index]
		return self._make_token(TokenKind.STRING, lexeme, start, "".join(chars))

	def _consume_name(self) -> Token:
		start = self._current_position()
		lexeme = self._consume_while(lambda c: c.isalnum() or c == "_")
		return self._make_token(TokenKind.NAME, lexeme, start, lexeme)

	def _consume_number(self) -> Token:
		start = self._current_position()
		lexeme = self._consume_while(lambda c: _is_digit(c) or c == ".")
		if lexeme.count(".") > 1:
			raise CompilationError(f"Invalid number: '{lexeme}'", span=Span(start, self._current_position(), self.origin))
		return self._make_token(TokenKind.NUMBER, lexeme, start, float(lexeme))

	def _consume_while(self, predicate: Callable[[str], bool]) -> str:
		start_index = self.index
		while not self._is_eof() and predicate(self._peek()):
			self._advance()
		return self.source[start_index:self.index]

	def _current_position(self) -> Position:
		return Position(self.line, self.column, self.index)

	def _make_token(self, kind: TokenKind, lexeme: str, start: Position, value: Any = None) -> Token:
		span = Span(start, self._current_position(), self.origin)
		return Token(kind, lexeme, span, value, self.includes)

	def _advance(self) -> str:
		ch = self.source[self.index]
		self.index += 1
		if ch == "\n":
			self.line += 1
			self.column = 1
		else:
			self.column += 1
		return ch

	def _peek(self) -> str:
		return self.source[self.index]

	def _peek_next(self) -> str:
		if self.index + 1 >= self.length:
			return ""
		return self.source[self.index + 1]

	def _is_eof(self) -> bool:
		return self.index >= self.length


def tokenize(source: str, origin: Optional[str] = None) -> List[Token]:
	return Lexer(source, origin).tokenize()
