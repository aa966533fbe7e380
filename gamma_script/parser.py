"""Recursive-descent statement parser producing the h-code stream.

Every ``_parse_*`` method starts at the current token and returns with the
cursor on the first token after the syntax it covers. Expressions are handed
to :class:`~gamma_script.expressions.ExpressionParser`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, NoReturn, Optional, Tuple, Union

from pydantic import ValidationError

from .constants import CONSTANT_ERROR_MSG, is_constant
from .diagnostics import CompilationError, ReservedConstantError
from .expressions import ExpressionParser
from .hcode import HCode, Label, Literal, Name, Op, Opcode, PrecisionType, is_numeric_literal
from .lexer import Lexer, Token
from .settings import COMPILER_VERSION, CompileSettings, is_valid_version, version_satisfies
from .sources import FileSystemResolver, SourceResolver
from .state import CompilationState, TokenCursor
from .styles import StyleError, StylesheetCollaborator, StyleSourceCollector

logger = logging.getLogger(__name__)

COMMAND_NAMES = (
	"display",
	"frame",
	"animation",
	"axes",
	"grid",
	"hypergrid",
	"event",
	"line",
	"worldline",
	"path",
	"label",
)

# Default property per command, and whether it may be omitted.
DEFAULT_COMMAND_PROPERTIES: Dict[str, Tuple[str, bool]] = {
	"frame": ("frame", True),
	"axes": ("frame", True),
	"grid": ("frame", True),
	"event": ("location", False),
	"label": ("location", False),
	"line": ("line", False),
	"worldline": ("observer", False),
	"path": ("path", False),
}

_SET_KEYS = "'units', 'displayPrecision', 'printPrecision', or 'minVersion'"

# set key -> (settings field, name used in messages)
_NUMERIC_SETTINGS: Dict[str, Tuple[str, str]] = {
	"units": ("units", "Units"),
	"displayPrecision": ("display_precision", "Display precision"),
	"printPrecision": ("print_precision", "Print precision"),
}


# ---------------------------------------------------------------------------
# Trial parse results


@dataclass(frozen=True)
class NoMatch:
	pass


@dataclass(frozen=True)
class HardError:
	error: CompilationError


@dataclass(frozen=True)
class Match:
	codes: List[HCode]
	position: int


TrialResult = Union[NoMatch, HardError, Match]


# ---------------------------------------------------------------------------
# Parser


class Parser:
	def __init__(
		self,
		source: str,
		origin: Optional[str] = None,
		resolver: Optional[SourceResolver] = None,
		styles: Optional[StylesheetCollaborator] = None,
	) -> None:
		self.source = source
		self.origin = origin
		self.resolver: SourceResolver = resolver if resolver is not None else FileSystemResolver()
		self.styles: StylesheetCollaborator = styles if styles is not None else StyleSourceCollector()
		self.cursor: Optional[TokenCursor] = None
		self.state: Optional[CompilationState] = None
		self.expressions = ExpressionParser(self)
		self.hcodes: List[HCode] = []

	# -- results --------------------------------------------------------------

	@property
	def tokens(self) -> List[Token]:
		return self.cursor.tokens if self.cursor is not None else []

	@property
	def stylesheet(self) -> Any:
		return self.state.stylesheet if self.state is not None else self.styles.empty()

	@property
	def settings(self) -> CompileSettings:
		return self.state.settings if self.state is not None else CompileSettings()

	@property
	def dependent_files(self) -> List[str]:
		return list(self.state.dependencies) if self.state is not None else []

	@property
	def is_animated(self) -> bool:
		return self.state is not None and self.state.animation_statement and self.state.animation_variable

	@property
	def has_display_variables(self) -> bool:
		return self.state is not None and self.state.display_variable

	def parse(self) -> List[HCode]:
		tokens = Lexer(self.source, self.origin).tokenize()
		self.cursor = TokenCursor(tokens)
		self.state = CompilationState(cursor=self.cursor, stylesheet=self.styles.empty())
		self.hcodes = self._parse_program()
		logger.debug(
			"Parsed %s: %d tokens, %d h-codes, %d labels",
			self.origin or "<script>",
			len(self.cursor.tokens),
			len(self.hcodes),
			self.state.next_label,
		)
		return self.hcodes

	# -- cursor helpers -------------------------------------------------------

	@property
	def current(self) -> Token:
		return self.cursor.current

	@property
	def peek(self) -> Token:
		return self.cursor.peek

	def advance(self) -> None:
		self.cursor.advance()

	def fail(self, message: str, token: Optional[Token] = None) -> NoReturn:
		raise CompilationError(message, token if token is not None else self.current)

	def _expect_delimiter(self, char: str, message: str) -> None:
		if not self.current.is_delimiter(char):
			self.fail(message)
		self.advance()

	def _expect_keyword(self, name: str) -> None:
		if not self.current.is_name(name):
			self.fail(f"Expected '{name}'")
		self.advance()

	def _is_keyword(self, *names: str) -> bool:
		return self.current.is_name() and self.current.value in names

	def parse_expression(self) -> List[HCode]:
		return self.expressions.parse()

	# -- program structure ----------------------------------------------------

	def _parse_program(self) -> List[HCode]:
		codes: List[HCode] = []
		self.advance()
		while not self.current.is_eof:
			codes.extend(self._parse_statement_block())
			if self.current.is_delimiter("}"):
				self.fail("Unexpected '}'")
		return codes

	def _parse_statement_block(self) -> List[HCode]:
		"""Statements up to EOF or an unconsumed '}'; the caller judges the terminator."""
		codes: List[HCode] = []
		while not self.current.is_eof and not self.current.is_delimiter("}"):
			codes.extend(self._parse_statement())
		return codes

	def _parse_braced_block(self) -> List[HCode]:
		self.advance()
		codes = self._parse_statement_block()
		self._expect_delimiter("}", "Expected a '}'")
		return codes

	def _parse_statement(self) -> List[HCode]:
		token = self.current
		if token.is_name():
			codes: List[HCode] = [Op(Opcode.LINE_INFO, token.span)]
			start = self.cursor.mark()
			trial = self._try_left_variable()
			if isinstance(trial, HardError):
				raise trial.error
			if isinstance(trial, Match):
				codes.extend(trial.codes)
				codes.extend(self._parse_assignment())
				self._expect_delimiter(";", "Expected a ';'")
				return codes
			self.cursor.reset(start)
			if token.value == "if":
				codes.extend(self._parse_if())
			elif token.value == "while":
				codes.extend(self._parse_while())
			elif token.value == "for":
				codes.extend(self._parse_for())
			else:
				codes.extend(self._parse_simple_statement())
				self._expect_delimiter(";", "Expected a ';'")
			return codes
		if token.is_delimiter("{"):
			return self._parse_braced_block()
		if token.is_delimiter(";"):
			self.advance()
			return []
		self.fail("Expected the start of a statement")

	def _parse_simple_statement(self) -> List[HCode]:
		keyword = self.current.value
		if keyword == "include":
			self._parse_include()
			return []
		if keyword == "stylesheet":
			self._parse_stylesheet()
			return []
		if keyword == "set":
			self._parse_set()
			return []
		handlers = {
			"print": self._parse_print,
			"static": self._parse_static,
			"animate": self._parse_animate,
			"range": self._parse_range,
			"toggle": self._parse_toggle,
			"choice": self._parse_choice,
			"break": self._parse_break,
			"continue": self._parse_continue,
		}
		handler = handlers.get(keyword, self._parse_command)
		return handler()

	# -- variables ------------------------------------------------------------

	def _try_left_variable(self) -> TrialResult:
		"""Trial-parse ``name[.name]*`` followed by '='.

		The cursor is left after the chain on a match and is undefined
		otherwise; callers reset it.
		"""
		try:
			codes = self._parse_left_variable()
		except ReservedConstantError as error:
			return HardError(error)
		except CompilationError:
			return NoMatch()
		if not self.current.is_delimiter("="):
			return NoMatch()
		return Match(codes, self.cursor.mark())

	def _parse_left_variable(self) -> List[HCode]:
		codes: List[HCode] = []
		first = True
		while True:
			if not self.current.is_name():
				self.fail("Variable name expected")
			codes.extend(self.parse_variable())
			codes.append(Op(Opcode.FETCH_ADDRESS if first else Opcode.FETCH_PROP_ADDRESS))
			first = False
			if not self.peek.is_operator("."):
				self.advance()
				return codes
			self.advance()
			self.advance()

	def parse_variable(self) -> List[HCode]:
		"""A name, optionally indexed with ``[expr]``.

		The cursor is left on the name, or on the closing ']'.
		"""
		token = self.current
		if is_constant(token.value):
			raise ReservedConstantError(CONSTANT_ERROR_MSG, token)
		if not self.peek.is_delimiter("["):
			return [Name(token.value)]
		self.advance()
		self.advance()
		codes = self.parse_expression()
		if not self.current.is_delimiter("]"):
			self.fail("Expected a ']'")
		codes.append(Name(token.value))
		codes.append(Op(Opcode.DYNAMIC_NAME))
		return codes

	def _parse_declared_variable(self) -> List[HCode]:
		"""``keyword variable =`` prefix shared by the declaration statements."""
		self.advance()
		if not self.current.is_name():
			self.fail("Variable name expected")
		codes = self.parse_variable()
		codes.append(Op(Opcode.FETCH_ADDRESS))
		self.advance()
		self._expect_delimiter("=", "Expected '='")
		return codes

	# -- control flow ---------------------------------------------------------

	def _parse_condition(self) -> List[HCode]:
		self.advance()
		self._expect_delimiter("(", "Expected '('")
		codes = self.parse_expression()
		self._expect_delimiter(")", "Expected ')'")
		return codes

	def _parse_if(self) -> List[HCode]:
		codes = self._parse_condition()
		if_codes = self._parse_statement()
		else_codes: List[HCode] = []
		if self.current.is_name("else"):
			self.advance()
			else_codes = self._parse_statement()

		done = self.state.new_label()
		else_label = self.state.new_label() if else_codes else done

		codes.append(Op(Opcode.JUMP_IF_FALSE, else_label))
		codes.extend(if_codes)
		if else_codes:
			codes.append(Op(Opcode.JUMP, done))
			codes.append(Label(else_label))
			codes.extend(else_codes)
		codes.append(Label(done))
		return codes

	def _parse_while(self) -> List[HCode]:
		start = self.state.new_label()
		done = self.state.new_label()
		self.state.push_loop(start, done)

		codes: List[HCode] = [Label(start)]
		codes.extend(self._parse_condition())
		codes.append(Op(Opcode.JUMP_IF_FALSE, done))
		codes.extend(self._parse_statement())
		codes.append(Op(Opcode.JUMP, start))
		codes.append(Label(done))

		self.state.pop_loop()
		return codes

	def _parse_for(self) -> List[HCode]:
		state = self.state
		start = state.new_label()
		resume = state.new_label()
		done = state.new_label()
		state.push_loop(resume, done)

		self.advance()
		if not self.current.is_name():
			self.fail("Expected a variable")
		if is_constant(self.current.value):
			raise ReservedConstantError(CONSTANT_ERROR_MSG, self.current)
		variable = self.current.value
		self.advance()
		self._expect_delimiter("=", "Expected '='")
		initial = self.parse_expression()
		self._expect_keyword("to")
		final = self.parse_expression()
		self._expect_keyword("step")
		step = self.parse_expression()
		body = self._parse_statement()

		codes: List[HCode] = [Name(variable), Op(Opcode.FETCH_ADDRESS)]
		codes.extend(initial)
		codes.append(Op(Opcode.ASSIGN))

		final_constant = _fold_constant(final)
		final_name = f"{variable}$$final"
		if final_constant is None:
			codes.extend([Name(final_name), Op(Opcode.FETCH_ADDRESS)])
			codes.extend(final)
			codes.append(Op(Opcode.ASSIGN))
			final_fetch: List[HCode] = [Name(final_name), Op(Opcode.FETCH)]
		else:
			final_fetch = [Literal(final_constant)]

		step_constant = _fold_constant(step)
		step_name = f"{variable}$$step"
		if step_constant is None:
			codes.extend([Name(step_name), Op(Opcode.FETCH_ADDRESS)])
			codes.extend(step)
			codes.append(Op(Opcode.ASSIGN))
			step_fetch: List[HCode] = [Name(step_name), Op(Opcode.FETCH)]
		else:
			step_fetch = [Literal(step_constant)]

		if step_constant == 0.0:
			state.pop_loop()
			return codes

		loop_fetch: List[HCode] = [Name(variable), Op(Opcode.FETCH)]

		if step_constant is None:
			codes.extend(step_fetch)
			codes.extend([Literal(0.0), Op(Opcode.EQ), Op(Opcode.JUMP_IF_TRUE, done)])

		codes.append(Label(start))

		if step_constant is not None:
			codes.extend(loop_fetch)
			codes.extend(final_fetch)
			codes.append(Op(Opcode.LE if step_constant > 0 else Opcode.GE))
			codes.append(Op(Opcode.JUMP_IF_FALSE, done))
		else:
			rising = state.new_label()
			either = state.new_label()
			falling = state.new_label()
			# (step > 0 && v <= final) || (step < 0 && v >= final)
			codes.extend(step_fetch)
			codes.extend([Literal(0.0), Op(Opcode.GT), Op(Opcode.JUMP_AND, rising)])
			codes.extend(loop_fetch)
			codes.extend(final_fetch)
			codes.extend([Op(Opcode.LE), Op(Opcode.AND), Label(rising), Op(Opcode.JUMP_OR, either)])
			codes.extend(step_fetch)
			codes.extend([Literal(0.0), Op(Opcode.LT), Op(Opcode.JUMP_AND, falling)])
			codes.extend(loop_fetch)
			codes.extend(final_fetch)
			codes.extend([Op(Opcode.GE), Op(Opcode.AND), Label(falling), Op(Opcode.OR), Label(either)])
			codes.append(Op(Opcode.JUMP_IF_FALSE, done))

		codes.extend(body)

		codes.append(Label(resume))
		codes.extend([Name(variable), Op(Opcode.FETCH_ADDRESS)])
		codes.extend(loop_fetch)
		codes.extend(step_fetch)
		codes.extend([Op(Opcode.ADD), Op(Opcode.ASSIGN)])
		codes.append(Op(Opcode.JUMP, start))
		codes.append(Label(done))

		state.pop_loop()
		return codes

	def _parse_break(self) -> List[HCode]:
		token = self.current
		self.advance()
		labels = self.state.innermost_loop()
		if labels is None:
			self.fail("The break statement is not inside a loop", token)
		return [Op(Opcode.JUMP, labels[1])]

	def _parse_continue(self) -> List[HCode]:
		token = self.current
		self.advance()
		labels = self.state.innermost_loop()
		if labels is None:
			self.fail("The continue statement is not inside a loop", token)
		return [Op(Opcode.JUMP, labels[0])]

	# -- assignments and declarations ----------------------------------------

	def _parse_assignment(self) -> List[HCode]:
		self.advance()
		codes = self.parse_expression()
		codes.append(Op(Opcode.ASSIGN))
		return codes

	def _parse_static(self) -> List[HCode]:
		codes = self._parse_declared_variable()
		codes.extend(self.parse_expression())
		codes.append(Op(Opcode.STATIC_ASSIGN))
		return codes

	def _parse_animate(self) -> List[HCode]:
		codes = self._parse_declared_variable()
		codes.extend(self.parse_expression())
		if not self._is_keyword("to", "step"):
			self.fail("Expected 'to' or 'step'")
		if self.current.is_name("to"):
			self.advance()
			codes.extend(self.parse_expression())
		else:
			codes.append(Literal(math.nan))
		self._expect_keyword("step")
		codes.extend(self.parse_expression())
		self.state.animation_variable = True
		codes.append(Op(Opcode.ANIM_ASSIGN))
		return codes

	def _parse_range(self) -> List[HCode]:
		codes = self._parse_declared_variable()
		codes.extend(self.parse_expression())
		for keyword in ("from", "to", "label"):
			self._expect_keyword(keyword)
			codes.extend(self.parse_expression())
		self.state.display_variable = True
		codes.append(Op(Opcode.RANGE_ASSIGN))
		return codes

	def _parse_restart_flag(self) -> Literal:
		if self.current.is_name("restart"):
			self.advance()
			return Literal(1.0)
		return Literal(0.0)

	def _parse_toggle(self) -> List[HCode]:
		codes = self._parse_declared_variable()
		codes.extend(self.parse_expression())
		self._expect_keyword("label")
		codes.extend(self.parse_expression())
		codes.append(self._parse_restart_flag())
		self.state.display_variable = True
		codes.append(Op(Opcode.TOGGLE_ASSIGN))
		return codes

	def _parse_choice(self) -> List[HCode]:
		codes = self._parse_declared_variable()
		codes.extend(self.parse_expression())
		self._expect_keyword("choices")
		choices = self.parse_expression()
		count = 1
		while self.current.is_delimiter(","):
			self.advance()
			choices.extend(self.parse_expression())
			count += 1
		self._expect_keyword("label")
		codes.extend(self.parse_expression())
		codes.append(self._parse_restart_flag())
		codes.extend(choices)
		# variable, initial choice, label and restart flag precede the choices
		codes.append(Literal(count + 4))
		self.state.display_variable = True
		codes.append(Op(Opcode.CHOICE_ASSIGN))
		return codes

	# -- print and commands ---------------------------------------------------

	def _parse_print(self) -> List[HCode]:
		self.advance()
		if self.current.is_delimiter(";"):
			return [Literal(""), Op(Opcode.PRINT)]
		codes: List[HCode] = [Op(Opcode.SET_PRECISION, PrecisionType.PRINT)]
		codes.extend(self.parse_expression())
		codes.append(Op(Opcode.PRINT))
		codes.append(Op(Opcode.SET_PRECISION, PrecisionType.DISPLAY))
		return codes

	def _peek_for_property(self) -> bool:
		return self.current.is_delimiter(";") or (self.current.is_name() and self.peek.is_delimiter(":"))

	def _parse_command(self) -> List[HCode]:
		name = self.current.value
		if name not in COMMAND_NAMES:
			self.fail(f"Unknown command name '{name}'")
		if name == "animation":
			self.state.animation_statement = True
		self.advance()

		codes: List[HCode] = []
		extra = 0
		default = DEFAULT_COMMAND_PROPERTIES.get(name)
		if default is not None:
			property_name, optional = default
			if not (optional and self._peek_for_property()):
				codes.append(Name(property_name))
				codes.extend(self.parse_expression())
				codes.append(Op(Opcode.PROPERTY))
				if self.current.is_delimiter(","):
					self.advance()
				extra = 1

		codes.extend(self._parse_property_list(extra))
		codes.append(Name(name))
		codes.append(Op(Opcode.COMMAND))
		return codes

	def _is_property_element(self) -> bool:
		return self.current.is_name() and self.peek.is_delimiter(":")

	def _parse_property_list(self, extra: int) -> List[HCode]:
		codes: List[HCode] = []
		if not self._is_property_element() and not self.expressions.is_expression_start():
			return [Literal(extra), Op(Opcode.PROPERTY_LIST)]
		count = 0
		while True:
			if self._is_property_element():
				codes.append(Name(self.current.value))
				self.advance()
				self.advance()
				codes.extend(self.parse_expression())
				codes.append(Op(Opcode.PROPERTY))
			else:
				codes.extend(self.parse_expression())
			count += 1
			if not self.current.is_delimiter(","):
				break
			self.advance()
		codes.append(Literal(count + extra))
		codes.append(Op(Opcode.PROPERTY_LIST))
		return codes

	# -- auxiliary statements -------------------------------------------------

	def _parse_include(self) -> None:
		self.advance()
		token = self.current
		if not token.is_string:
			self.fail("Missing include file name")
		if not self.peek.is_delimiter(";"):
			self.fail("Expected a ';' after the include file name", self.peek)

		chain = token.includes + ((token.origin,) if token.origin is not None else ())
		try:
			origin = self.resolver.resolve(token.value, token.origin)
			if origin in chain:
				self.fail(f"Circular include of '{token.value}'", token)
			text = self.resolver.read(origin)
		except OSError as exc:
			self.fail(f"IO Error - {exc}", token)

		included = Lexer(text, origin, includes=chain).tokenize()
		self.state.dependencies.append(origin)

		# Drop "include" and the name; the ';' moves to position - 1 and the
		# included tokens (less their EOF) follow it.
		position = self.cursor.mark()
		self.cursor.splice(position - 1, position + 1, position, included[:-1])
		logger.debug("Included %s: %d tokens", origin, len(included) - 1)

	def _parse_stylesheet(self) -> None:
		self.advance()
		external = False
		if self.current.is_name("external"):
			external = True
			self.advance()
		token = self.current
		if not token.is_string:
			self.fail("Expected a string literal")
		self.advance()

		try:
			if external:
				origin = self.resolver.resolve(token.value, token.origin)
				sheet = self.styles.parse(origin, self.resolver.read(origin))
				self.state.dependencies.append(origin)
			else:
				sheet = self.styles.parse(token.origin, token.value)
		except OSError as exc:
			self.fail(f"IO Error - {exc}", token)
		except StyleError as exc:
			self.fail(str(exc), token)

		self.state.stylesheet = self.styles.merge(self.state.stylesheet, sheet)
		logger.debug("Merged %s stylesheet from %s", "external" if external else "inline", token.origin or "<script>")

	def _parse_set(self) -> None:
		self.advance()
		changes: Dict[str, Any] = {}
		seen = set()
		while True:
			token = self.current
			if not token.is_name() or (token.value not in _NUMERIC_SETTINGS and token.value != "minVersion"):
				self.fail(f"Expected {_SET_KEYS}")
			key = token.value
			if key in seen:
				label = _NUMERIC_SETTINGS[key][1] if key in _NUMERIC_SETTINGS else "The minimum version"
				self.fail(f"{label} {'are' if key == 'units' else 'is'} set twice")
			seen.add(key)
			self.advance()
			self._expect_delimiter(":", "Expected a ':'")
			value = self.current

			if key == "minVersion":
				if not value.is_string:
					self.fail("The minimum version must be set to a string")
				if not is_valid_version(value.value):
					self.fail(f"'{value.value}' is not a valid version number")
				if not version_satisfies(value.value):
					self.fail(f"This script requires version {value.value} or later (this is {COMPILER_VERSION})")
				changes["min_version"] = value.value
			else:
				field_name, label = _NUMERIC_SETTINGS[key]
				if not value.is_number:
					self.fail(f"{label} must be set to a floating point number >= 0")
				changes[field_name] = value.value
			self.advance()

			if not self.current.is_delimiter(","):
				break
			self.advance()

		try:
			self.state.settings = self.state.settings.updated(**changes)
		except ValidationError as exc:
			self.fail(f"Invalid setting: {exc.errors()[0]['msg']}")


def _fold_constant(codes: List[HCode]) -> Optional[float]:
	"""Value of a loop bound that is a numeric literal, possibly signed."""
	if len(codes) == 1 and is_numeric_literal(codes[0]):
		return float(codes[0].value)
	if len(codes) == 2 and is_numeric_literal(codes[0]) and isinstance(codes[1], Op):
		if codes[1].code == Opcode.UNARY_MINUS:
			return -float(codes[0].value)
		if codes[1].code == Opcode.UNARY_PLUS:
			return float(codes[0].value)
	return None
