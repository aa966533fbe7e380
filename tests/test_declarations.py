from __future__ import annotations

import math

import pytest

from gamma_script import Literal
from support import codes_of, compile_error, lit, make_parser, name, op


def test_static():
	assert codes_of("static s = 1;") == [name("s"), op("FETCH_ADDRESS"), lit(1.0), op("STATIC_ASSIGN")]


def test_static_array_element():
	assert codes_of("static a[2] = 1;") == [
		lit(2.0),
		name("a"),
		op("DYNAMIC_NAME"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		op("STATIC_ASSIGN"),
	]


def test_animate_with_limit():
	assert codes_of("animate t = 0 to 10 step 0.5;") == [
		name("t"),
		op("FETCH_ADDRESS"),
		lit(0.0),
		lit(10.0),
		lit(0.5),
		op("ANIM_ASSIGN"),
	]


def test_animate_without_limit_defaults_to_nan():
	codes = codes_of("animate t = 0 step 1;")
	assert codes[:3] == [name("t"), op("FETCH_ADDRESS"), lit(0.0)]
	assert math.isnan(codes[3].value)
	assert codes[4:] == [lit(1.0), op("ANIM_ASSIGN")]


def test_animate_errors():
	assert compile_error("animate t = 0;").message == "Expected 'to' or 'step'"
	assert compile_error("animate t = 0 to 5;").message == "Expected 'step'"


def test_range():
	assert codes_of('range r = 5 from 0 to 10 label "R";') == [
		name("r"),
		op("FETCH_ADDRESS"),
		lit(5.0),
		lit(0.0),
		lit(10.0),
		lit("R"),
		op("RANGE_ASSIGN"),
	]
	assert compile_error("range r = 5 to 10 label 1;").message == "Expected 'from'"


def test_toggle():
	assert codes_of('toggle t = 1 label "T";') == [
		name("t"),
		op("FETCH_ADDRESS"),
		lit(1.0),
		lit("T"),
		lit(0.0),
		op("TOGGLE_ASSIGN"),
	]
	assert codes_of('toggle t = 1 label "T" restart;')[-2] == lit(1.0)


def test_choice():
	assert codes_of('choice c = "a" choices "a", "b", "c" label "C";') == [
		name("c"),
		op("FETCH_ADDRESS"),
		lit("a"),
		lit("C"),
		lit(0.0),
		lit("a"),
		lit("b"),
		lit("c"),
		Literal(7),
		op("CHOICE_ASSIGN"),
	]


def test_choice_with_restart_and_single_choice():
	codes = codes_of('choice c = 1 choices 1 label "C" restart;')
	assert codes[-5:] == [lit("C"), lit(1.0), lit(1.0), Literal(5), op("CHOICE_ASSIGN")]


@pytest.mark.parametrize(
	"source,message",
	[
		("static 1 = 2;", "Variable name expected"),
		("static PI = 2;", "You can't use a constant here"),
		("range r 5 from 0 to 1 label 1;", "Expected '='"),
		("choice c = 1 label 1;", "Expected 'choices'"),
		("toggle t = 1;", "Expected 'label'"),
	],
)
def test_declaration_errors(source, message):
	assert compile_error(source).message == message


def test_display_variable_flag():
	for source in ('range r = 1 from 0 to 2 label "r";', 'toggle t = 1 label "t";', 'choice c = 1 choices 1 label "c";'):
		parser = make_parser(source)
		parser.parse()
		assert parser.has_display_variables
	parser = make_parser("static s = 1; animate t = 0 step 1;")
	parser.parse()
	assert not parser.has_display_variables


def test_animation_needs_both_a_variable_and_the_command():
	cases = {
		"animate t = 0 step 1;": False,
		"animation;": False,
		"animate t = 0 step 1; animation;": True,
	}
	for source, expected in cases.items():
		parser = make_parser(source)
		parser.parse()
		assert parser.is_animated is expected


# ---------------------------------------------------------------------------
# Commands


def test_command_without_properties():
	assert codes_of("display;") == [Literal(0), op("PROPERTY_LIST"), name("display"), op("COMMAND")]


def test_command_with_required_default_property():
	assert codes_of('event (1, 2), color: "red";') == [
		name("location"),
		lit(1.0),
		lit(2.0),
		op("COORDINATE"),
		op("PROPERTY"),
		name("color"),
		lit("red"),
		op("PROPERTY"),
		Literal(2),
		op("PROPERTY_LIST"),
		name("event"),
		op("COMMAND"),
	]


def test_optional_default_property():
	assert codes_of("frame f;") == [
		name("frame"),
		name("f"),
		op("FETCH"),
		op("PROPERTY"),
		Literal(1),
		op("PROPERTY_LIST"),
		name("frame"),
		op("COMMAND"),
	]
	assert codes_of("axes;") == [Literal(0), op("PROPERTY_LIST"), name("axes"), op("COMMAND")]
	assert codes_of("frame color: 1;") == [
		name("color"),
		lit(1.0),
		op("PROPERTY"),
		Literal(1),
		op("PROPERTY_LIST"),
		name("frame"),
		op("COMMAND"),
	]


def test_property_list_mixes_named_and_positional_values():
	assert codes_of("display width: 2, 3;") == [
		name("width"),
		lit(2.0),
		op("PROPERTY"),
		lit(3.0),
		Literal(2),
		op("PROPERTY_LIST"),
		name("display"),
		op("COMMAND"),
	]


def test_command_errors():
	assert compile_error("foo 1;").message == "Unknown command name 'foo'"
	assert compile_error("event;").message == "Expected an expression"
	assert compile_error("display width: 2 3;").message == "Expected a ';'"
