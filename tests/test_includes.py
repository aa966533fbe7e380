from __future__ import annotations

import pytest

from gamma_script import CompileSettings, FileSystemResolver, Parser
from gamma_script.styles import StyleSource
from support import ORIGIN, codes_of, compile_error, lit, make_parser, name, op, run_script, strip_line_info


def test_include_splices_tokens_after_the_semicolon():
	files = {"lib.gs": "y = 2;"}
	assert codes_of('x = 1; include "lib.gs"; z = 3;', files) == [
		name("x"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		name("y"),
		op("FETCH_ADDRESS"),
		lit(2.0),
		op("ASSIGN"),
		name("z"),
		op("FETCH_ADDRESS"),
		lit(3.0),
		op("ASSIGN"),
	]


def test_included_tokens_keep_their_origin():
	parser = make_parser('include "lib.gs";', {"lib.gs": "y = 2;"})
	parser.parse()
	origins = [t.origin for t in parser.tokens if not t.is_eof]
	assert origins == [ORIGIN, "lib.gs", "lib.gs", "lib.gs", "lib.gs"]
	assert parser.tokens[1].includes == (ORIGIN,)


def test_include_inside_a_block():
	result = run_script('if (1) { include "lib.gs"; } print x;', {"lib.gs": "x = 5;"})
	assert result.output == "5\n"


def test_dependencies_are_recorded_in_order():
	files = {
		"a.gs": 'include "sub/b.gs";',
		"sub/b.gs": 'include "c.gs";',
		"sub/c.gs": "x = 1;",
	}
	parser = make_parser('include "a.gs";', files)
	parser.parse()
	assert parser.dependent_files == ["a.gs", "sub/b.gs", "sub/c.gs"]


def test_errors_in_included_files_carry_their_origin():
	error = compile_error('x = 1;\ninclude "lib.gs";', {"lib.gs": "\n\ny = ;"})
	assert error.message == "Expected an expression"
	assert error.origin == "lib.gs"
	assert (error.line, error.column) == (3, 5)


def test_direct_include_cycle():
	error = compile_error('include "main.gs";')
	assert error.message == "Circular include of 'main.gs'"
	assert error.origin == ORIGIN


def test_include_cycle_through_a_chain():
	files = {"a.gs": 'include "b.gs";', "b.gs": 'include "a.gs";'}
	error = compile_error('include "a.gs";', files)
	assert error.message == "Circular include of 'a.gs'"
	assert error.origin == "b.gs"


def test_same_file_may_be_included_twice():
	files = {"lib.gs": "n = n + 1;"}
	result = run_script('n = 0; include "lib.gs"; include "lib.gs"; print n;', files)
	assert result.output == "2\n"


@pytest.mark.parametrize(
	"source,message",
	[
		('include "missing.gs";', "IO Error - No such file: 'missing.gs'"),
		('include "lib.gs" x = 1;', "Expected a ';' after the include file name"),
		('include "lib.gs"', "Expected a ';' after the include file name"),
		("include lib;", "Missing include file name"),
	],
)
def test_include_errors(source, message):
	assert compile_error(source, {"lib.gs": ""}).message == message


def test_include_from_the_file_system(tmp_path):
	(tmp_path / "lib").mkdir()
	(tmp_path / "lib" / "inc.gs").write_text("y = 2;", encoding="utf-8")
	main = tmp_path / "main.gs"
	parser = Parser('include "lib/inc.gs";', str(main), FileSystemResolver(tmp_path))
	parser.parse()
	assert parser.dependent_files == [str((tmp_path / "lib" / "inc.gs").resolve())]


# ---------------------------------------------------------------------------
# Stylesheets


def test_inline_stylesheet():
	parser = make_parser('stylesheet "frame { color: red; }";')
	assert strip_line_info(parser.parse()) == []
	assert parser.stylesheet == (StyleSource(ORIGIN, "frame { color: red; }"),)


def test_external_stylesheets_merge_in_order():
	files = {"style.css": "axes { width: 2; }"}
	parser = make_parser('stylesheet "a {}"; stylesheet external "style.css";', files)
	parser.parse()
	assert parser.stylesheet == (StyleSource(ORIGIN, "a {}"), StyleSource("style.css", "axes { width: 2; }"))
	assert parser.dependent_files == ["style.css"]


@pytest.mark.parametrize(
	"source,message",
	[
		('stylesheet "a {";', "Unterminated rule in stylesheet"),
		('stylesheet "}";', "Unexpected '}' in stylesheet"),
		("stylesheet a;", "Expected a string literal"),
		('stylesheet external "none.css";', "IO Error - No such file: 'none.css'"),
	],
)
def test_stylesheet_errors(source, message):
	assert compile_error(source).message == message


# ---------------------------------------------------------------------------
# Settings


def test_defaults_without_set():
	parser = make_parser("x = 1;")
	parser.parse()
	assert parser.settings == CompileSettings()


def test_set_statements_accumulate():
	parser = make_parser('set units: 2, displayPrecision: 4; set printPrecision: 6, minVersion: "0.9";')
	assert strip_line_info(parser.parse()) == []
	settings = parser.settings
	assert (settings.units, settings.display_precision, settings.print_precision) == (2.0, 4.0, 6.0)
	assert settings.min_version == "0.9"


def test_later_set_statement_overrides():
	parser = make_parser("set units: 2; set units: 3;")
	parser.parse()
	assert parser.settings.units == 3.0


@pytest.mark.parametrize(
	"source,message",
	[
		("set units: 1, units: 2;", "Units are set twice"),
		("set printPrecision: 1, printPrecision: 2;", "Print precision is set twice"),
		('set minVersion: "1", minVersion: "1";', "The minimum version is set twice"),
		("set colour: 1;", "Expected 'units', 'displayPrecision', 'printPrecision', or 'minVersion'"),
		("set units 1;", "Expected a ':'"),
		('set units: "a";', "Units must be set to a floating point number >= 0"),
		("set displayPrecision: -1;", "Display precision must be set to a floating point number >= 0"),
		("set minVersion: 1;", "The minimum version must be set to a string"),
		('set minVersion: "one";', "'one' is not a valid version number"),
		('set minVersion: "2.0";', "This script requires version 2.0 or later (this is 1.0.0)"),
	],
)
def test_set_errors(source, message):
	assert compile_error(source).message == message
