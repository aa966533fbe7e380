"""Mutable state owned by a single compilation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from .diagnostics import Position, Span
from .lexer import Token, TokenKind
from .settings import CompileSettings

_ORIGIN = Position(0, 0, 0)

# Stands in for the current token before the first advance().
START_TOKEN = Token(TokenKind.DELIMITER, "~", Span(_ORIGIN, _ORIGIN), "~")


class TokenCursor:
	"""Position, current token and one-token lookahead over a token list.

	The list always ends with an EOF token and the cursor never moves past it.
	"""

	def __init__(self, tokens: List[Token]) -> None:
		self.tokens = tokens
		self.position = -1
		self.current: Token = START_TOKEN
		self.peek: Token = tokens[0]

	def advance(self) -> None:
		if self.current.is_eof:
			return
		self.reset(self.position + 1)

	def mark(self) -> int:
		return self.position

	def reset(self, position: int) -> None:
		if position < 0:
			self.position = -1
			self.current = START_TOKEN
			self.peek = self.tokens[0]
			return
		self.position = min(position, len(self.tokens) - 1)
		self.current = self.tokens[self.position]
		self.peek = self.current if self.current.is_eof else self.tokens[self.position + 1]

	def splice(self, start: int, stop: int, insert_at: int, tokens: Sequence[Token]) -> None:
		"""Delete ``tokens[start:stop]`` and insert ``tokens`` at ``insert_at``.

		``insert_at`` is an index into the list after the deletion. The cursor
		is left on the token now at ``start``.
		"""
		del self.tokens[start:stop]
		self.tokens[insert_at:insert_at] = list(tokens)
		self.reset(start)


@dataclass
class CompilationState:
	cursor: TokenCursor
	stylesheet: Any
	settings: CompileSettings = field(default_factory=CompileSettings)
	next_label: int = 0
	loop_labels: List[Tuple[int, int]] = field(default_factory=list)
	dependencies: List[str] = field(default_factory=list)
	animation_statement: bool = False
	animation_variable: bool = False
	display_variable: bool = False

	def new_label(self) -> int:
		label = self.next_label
		self.next_label += 1
		return label

	def push_loop(self, continue_label: int, exit_label: int) -> None:
		self.loop_labels.append((continue_label, exit_label))

	def pop_loop(self) -> None:
		self.loop_labels.pop()

	def innermost_loop(self) -> Optional[Tuple[int, int]]:
		return self.loop_labels[-1] if self.loop_labels else None
