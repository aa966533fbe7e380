"""Stylesheet collaborator interface.

The compiler never looks inside a stylesheet value; it only asks the
collaborator to parse text into a value and to merge two values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple


class StyleError(Exception):
	pass


class StylesheetCollaborator(Protocol):
	def empty(self) -> Any:
		...

	def parse(self, origin: Optional[str], text: str) -> Any:
		...

	def merge(self, base: Any, addition: Any) -> Any:
		...


@dataclass(frozen=True)
class StyleSource:
	origin: Optional[str]
	text: str


Stylesheet = Tuple[StyleSource, ...]


class StyleSourceCollector:
	"""Default collaborator: a stylesheet is the ordered tuple of its sources."""

	def empty(self) -> Stylesheet:
		return ()

	def parse(self, origin: Optional[str], text: str) -> Stylesheet:
		depth = 0
		for ch in text:
			if ch == "{":
				depth += 1
			elif ch == "}":
				depth -= 1
				if depth < 0:
					raise StyleError("Unexpected '}' in stylesheet")
		if depth != 0:
			raise StyleError("Unterminated rule in stylesheet")
		return (StyleSource(origin, text),)

	def merge(self, base: Stylesheet, addition: Stylesheet) -> Stylesheet:
		return base + addition
