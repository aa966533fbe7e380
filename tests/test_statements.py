from __future__ import annotations

from gamma_script import Label, Op, Opcode, PrecisionType
from support import codes_of, compile_error, lit, make_parser, name, op, run_script


def test_assignment():
	assert codes_of("x = 1;") == [name("x"), op("FETCH_ADDRESS"), lit(1.0), op("ASSIGN")]


def test_line_info_precedes_statements_starting_with_a_name():
	codes = make_parser("x = 1;\n\ny = 2;").parse()
	infos = [c for c in codes if isinstance(c, Op) and c.code == Opcode.LINE_INFO]
	assert [info.operand.start.line for info in infos] == [1, 3]
	assert codes[0] == infos[0]


def test_property_assignment():
	assert codes_of("a.b = 1;") == [
		name("a"),
		op("FETCH_ADDRESS"),
		name("b"),
		op("FETCH_PROP_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
	]


def test_indexed_property_assignment():
	assert codes_of("a[i].b = 1;") == [
		name("i"),
		op("FETCH"),
		name("a"),
		op("DYNAMIC_NAME"),
		op("FETCH_ADDRESS"),
		name("b"),
		op("FETCH_PROP_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
	]


def test_assigning_to_a_constant_is_a_hard_error():
	assert compile_error("PI = 3;").message == "You can't use a constant here"
	assert compile_error("a.TRUE = 3;").message == "You can't use a constant here"


def test_missing_semicolon():
	error = compile_error("x = 1 y = 2;")
	assert error.message == "Expected a ';'"
	assert (error.line, error.column) == (1, 7)


def test_empty_statements_and_blocks():
	assert codes_of(";;{ ; }") == []
	assert codes_of("{ x = 1; { y = 2; } }") == [
		name("x"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		name("y"),
		op("FETCH_ADDRESS"),
		lit(2.0),
		op("ASSIGN"),
	]


def test_block_errors():
	assert compile_error("{ x = 1;").message == "Expected a '}'"
	assert compile_error("x = 1; }").message == "Unexpected '}'"
	assert compile_error(": x;").message == "Expected the start of a statement"


# ---------------------------------------------------------------------------
# if / while / for


def test_if_without_else():
	assert codes_of("if (a) x = 1;") == [
		name("a"),
		op("FETCH"),
		op("JUMP_IF_FALSE", 0),
		name("x"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		Label(0),
	]


def test_if_with_else():
	assert codes_of("if (a) x = 1; else x = 2;") == [
		name("a"),
		op("FETCH"),
		op("JUMP_IF_FALSE", 1),
		name("x"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		op("JUMP", 0),
		Label(1),
		name("x"),
		op("FETCH_ADDRESS"),
		lit(2.0),
		op("ASSIGN"),
		Label(0),
	]


def test_empty_else_branch_gets_no_label():
	assert codes_of("if (a) {} else {}") == [name("a"), op("FETCH"), op("JUMP_IF_FALSE", 0), Label(0)]


def test_if_errors():
	assert compile_error("if a x = 1;").message == "Expected '('"
	assert compile_error("if (a x = 1;").message == "Expected ')'"


def test_while_loop():
	assert codes_of("while (a) x = 1;") == [
		Label(0),
		name("a"),
		op("FETCH"),
		op("JUMP_IF_FALSE", 1),
		name("x"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		op("JUMP", 0),
		Label(1),
	]


def test_break_and_continue_target_innermost_loop():
	assert codes_of("while (a) break;") == [
		Label(0),
		name("a"),
		op("FETCH"),
		op("JUMP_IF_FALSE", 1),
		op("JUMP", 1),
		op("JUMP", 0),
		Label(1),
	]
	codes = codes_of("while (a) { while (b) continue; break; }")
	jumps = [c.operand for c in codes if isinstance(c, Op) and c.code == Opcode.JUMP]
	# inner continue -> inner start (2), inner back edge, outer break -> outer done (1), outer back edge
	assert jumps == [2, 2, 1, 0]


def test_break_and_continue_outside_loops():
	error = compile_error("x = 1;\nbreak;")
	assert error.message == "The break statement is not inside a loop"
	assert (error.line, error.column) == (2, 1)
	assert compile_error("continue;").message == "The continue statement is not inside a loop"


def test_for_loop_with_constant_bounds():
	assert codes_of("for i = 1 to 3 step 1 x = i;") == [
		name("i"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("ASSIGN"),
		Label(0),
		name("i"),
		op("FETCH"),
		lit(3.0),
		op("LE"),
		op("JUMP_IF_FALSE", 2),
		name("x"),
		op("FETCH_ADDRESS"),
		name("i"),
		op("FETCH"),
		op("ASSIGN"),
		Label(1),
		name("i"),
		op("FETCH_ADDRESS"),
		name("i"),
		op("FETCH"),
		lit(1.0),
		op("ADD"),
		op("ASSIGN"),
		op("JUMP", 0),
		Label(2),
	]


def test_for_loop_folds_negative_constants():
	codes = codes_of("for i = 0 to -3 step -1 x = i;")
	assert op("GE") in codes
	assert lit(-3.0) in codes and lit(-1.0) in codes
	assert op("UNARY_MINUS") not in codes


def test_for_loop_with_zero_step_has_no_body():
	assert codes_of("for i = 1 to 3 step 0 x = i;") == [name("i"), op("FETCH_ADDRESS"), lit(1.0), op("ASSIGN")]


def test_for_loop_with_runtime_bounds_uses_hidden_variables():
	codes = codes_of("for i = 0 to n step s x = i;")
	assert codes[4:8] == [name("i$$final"), op("FETCH_ADDRESS"), name("n"), op("FETCH")]
	assert codes[9:13] == [name("i$$step"), op("FETCH_ADDRESS"), name("s"), op("FETCH")]
	assert codes[14:19] == [name("i$$step"), op("FETCH"), lit(0.0), op("EQ"), op("JUMP_IF_TRUE", 2)]
	assert [c.code.name for c in codes if isinstance(c, Op) and c.code.name.startswith("JUMP_")] == [
		"JUMP_IF_TRUE",
		"JUMP_AND",
		"JUMP_OR",
		"JUMP_AND",
		"JUMP_IF_FALSE",
	]


def test_for_loop_variable_must_be_a_variable():
	assert compile_error("for 1 = 0 to 1 step 1 x = 1;").message == "Expected a variable"
	assert compile_error("for PI = 0 to 1 step 1 x = 1;").message == "You can't use a constant here"
	assert compile_error("for i = 0 step 1 x = 1;").message == "Expected 'to'"
	assert compile_error("for i = 0 to 1 x = 1;").message == "Expected 'step'"


def test_for_loops_run():
	assert run_script("for i = 1 to 3 step 1 print i;").output == "1\n2\n3\n"
	assert run_script("for i = 0 to -3 step -1.5 print i;").output == "0\n-1.5\n-3\n"
	assert run_script("s = 2; n = 6; for i = 0 to n step s print i;").output == "0\n2\n4\n6\n"
	assert run_script("s = -2; for i = 4 to 0 step s print i;").output == "4\n2\n0\n"
	assert run_script("s = 0; for i = 0 to 3 step s print i;").output == ""


def test_continue_and_break_run():
	source = """
	for i = 1 to 10 step 1 {
		if (i == 3) continue;
		if (i > 5) break;
		print i;
	}
	"""
	assert run_script(source).output == "1\n2\n4\n5\n"


def test_while_loop_runs():
	source = "n = 0; total = 0; while (n < 4) { n = n + 1; total = total + n; } print total;"
	assert run_script(source).output == "10\n"


# ---------------------------------------------------------------------------
# print


def test_print():
	assert codes_of("print;") == [lit(""), op("PRINT")]
	assert codes_of("print 1;") == [
		op("SET_PRECISION", PrecisionType.PRINT),
		lit(1.0),
		op("PRINT"),
		op("SET_PRECISION", PrecisionType.DISPLAY),
	]


def test_print_runs_with_print_precision():
	assert run_script('print; print "pi=" + PI;').output == "\npi=3.14159265359\n"
	assert run_script("set printPrecision: 3; print PI;").output == "3.14\n"
