"""Compile pipeline facade: source text in, artifacts and diagnostics out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .diagnostics import CompilationError, Diagnostic, DiagnosticEngine
from .hcode import HCode
from .lexer import Token
from .parser import Parser
from .settings import CompileSettings
from .sources import SourceResolver
from .styles import StylesheetCollaborator

logger = logging.getLogger(__name__)


@dataclass
class CompilationArtifacts:
	tokens: List[Token]
	hcodes: List[HCode]
	stylesheet: Any
	settings: CompileSettings
	dependencies: List[str]
	is_animated: bool
	has_display_variables: bool
	diagnostics: List[Diagnostic]
	duration_ms: float
	origin: Optional[str] = None
	error: Optional[CompilationError] = field(default=None, repr=False)

	@property
	def ok(self) -> bool:
		return self.error is None


class ScriptCompilerEngine:
	def __init__(self, resolver: Optional[SourceResolver] = None, styles: Optional[StylesheetCollaborator] = None) -> None:
		self.resolver = resolver
		self.styles = styles

	def compile(self, source: str, origin: Optional[str] = None, resolver: Optional[SourceResolver] = None) -> CompilationArtifacts:
		diagnostics = DiagnosticEngine()
		start = time.perf_counter()
		parser = Parser(source, origin, resolver or self.resolver, self.styles)
		error: Optional[CompilationError] = None
		try:
			hcodes = parser.parse()
		except CompilationError as exc:
			error = exc
			hcodes = []
			diagnostics.report_error(exc)
			logger.debug("Compilation of %s failed: %s", origin or "<script>", exc)
		duration_ms = (time.perf_counter() - start) * 1000
		logger.debug("Compiled %s in %.2f ms", origin or "<script>", duration_ms)
		return CompilationArtifacts(
			tokens=parser.tokens,
			hcodes=hcodes,
			stylesheet=parser.stylesheet,
			settings=parser.settings,
			dependencies=parser.dependent_files,
			is_animated=parser.is_animated,
			has_display_variables=parser.has_display_variables,
			diagnostics=diagnostics.items,
			duration_ms=duration_ms,
			origin=origin,
			error=error,
		)
