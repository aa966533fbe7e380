"""Compiler for the Gamma diagram scripting language.

The public API used by the web service, the command line and the tests.
"""

from __future__ import annotations

from .diagnostics import CompilationError, Diagnostic, DiagnosticEngine, Position, ReservedConstantError, Severity, Span
from .engine import CompilationArtifacts, ScriptCompilerEngine
from .hcode import HCode, Label, Literal, Name, Op, Opcode, PrecisionType, format_hcodes, hcode_to_json
from .lexer import Lexer, Token, TokenKind, tokenize
from .parser import Parser
from .settings import COMPILER_VERSION, CompileSettings
from .sources import FileSystemResolver, InMemoryResolver, SourceResolver
from .styles import StyleError, StyleSourceCollector, StylesheetCollaborator

__version__ = COMPILER_VERSION

__all__ = [
	"ScriptCompilerEngine",
	"CompilationArtifacts",
	"Parser",
	"Lexer",
	"tokenize",
	"Token",
	"TokenKind",
	"HCode",
	"Literal",
	"Name",
	"Label",
	"Op",
	"Opcode",
	"PrecisionType",
	"format_hcodes",
	"hcode_to_json",
	"Severity",
	"Diagnostic",
	"DiagnosticEngine",
	"CompilationError",
	"ReservedConstantError",
	"Span",
	"Position",
	"CompileSettings",
	"SourceResolver",
	"FileSystemResolver",
	"InMemoryResolver",
	"StylesheetCollaborator",
	"StyleSourceCollector",
	"StyleError",
	"__version__",
]
