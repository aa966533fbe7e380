"""Global compile settings collected from ``set`` statements."""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

COMPILER_VERSION = "1.0.0"

VERSION_PATTERN = re.compile(r"^\d+(\.\d+){0,3}$")

DEFAULT_UNITS = 1.0
DEFAULT_DISPLAY_PRECISION = 12.0
DEFAULT_PRINT_PRECISION = 12.0


class CompileSettings(BaseModel):
	model_config = ConfigDict(frozen=True)

	units: float = Field(DEFAULT_UNITS, ge=0)
	display_precision: float = Field(DEFAULT_DISPLAY_PRECISION, ge=0)
	print_precision: float = Field(DEFAULT_PRINT_PRECISION, ge=0)
	min_version: Optional[str] = None

	def updated(self, **changes: Any) -> "CompileSettings":
		"""Return a validated copy with ``changes`` applied."""
		return CompileSettings(**{**self.model_dump(), **changes})


def is_valid_version(version: str) -> bool:
	return VERSION_PATTERN.match(version) is not None


def _version_tuple(version: str) -> Tuple[int, ...]:
	parts = [int(p) for p in version.split(".")]
	while len(parts) < 4:
		parts.append(0)
	return tuple(parts)


def version_satisfies(required: str, current: str = COMPILER_VERSION) -> bool:
	"""True when ``current`` is the same as or later than ``required``."""
	return _version_tuple(current) >= _version_tuple(required)
