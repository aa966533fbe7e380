"""Built-in named constants substituted at parse time."""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Mapping, Optional, Union

ConstantValue = Optional[Union[float, str]]

CONSTANTS: Mapping[str, ConstantValue] = MappingProxyType({
	"INF": math.inf,
	"inf": math.inf,
	"NULL": None,
	"null": None,
	"TRUE": 1.0,
	"FALSE": 0.0,
	"true": 1.0,
	"false": 0.0,
	"PI": math.pi,
	"E": math.e,
})

CONSTANT_ERROR_MSG = "You can't use a constant here"


def is_constant(name: str) -> bool:
	return name in CONSTANTS


def constant_value(name: str) -> ConstantValue:
	# NULL and null map to None, so use is_constant() to test membership.
	return CONSTANTS[name]
