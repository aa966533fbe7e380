from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from gamma_script import CompilationError, HCode, InMemoryResolver, Literal, Name, Op, Opcode, Parser, ScriptCompilerEngine
from webapp.interpreter import HCodeInterpreter, RunArtifacts

ORIGIN = "main.gs"


def op(name: str, operand=None) -> Op:
	return Op(Opcode[name], operand)


def lit(value) -> Literal:
	return Literal(value)


def name(text: str) -> Name:
	return Name(text)


def make_parser(source: str, files: Optional[Dict[str, str]] = None) -> Parser:
	return Parser(source, ORIGIN, InMemoryResolver(files or {}))


def strip_line_info(codes: List[HCode]) -> List[HCode]:
	return [c for c in codes if not (isinstance(c, Op) and c.code == Opcode.LINE_INFO)]


def codes_of(source: str, files: Optional[Dict[str, str]] = None) -> List[HCode]:
	return strip_line_info(make_parser(source, files).parse())


def expr_codes(text: str) -> List[HCode]:
	"""IR of ``text`` compiled as the right side of an assignment."""
	codes = codes_of(f"x = {text};")
	assert codes[:2] == [Name("x"), op("FETCH_ADDRESS")]
	assert codes[-1] == op("ASSIGN")
	return codes[2:-1]


def compile_error(source: str, files: Optional[Dict[str, str]] = None) -> CompilationError:
	with pytest.raises(CompilationError) as info:
		make_parser(source, files).parse()
	return info.value


def run_script(source: str, files: Optional[Dict[str, str]] = None, max_steps: int = 10_000) -> RunArtifacts:
	engine = ScriptCompilerEngine(resolver=InMemoryResolver(files or {}))
	art = engine.compile(source, origin=ORIGIN)
	assert art.ok, [d.message for d in art.diagnostics]
	return HCodeInterpreter(max_steps=max_steps).run(art.hcodes, art.settings)
