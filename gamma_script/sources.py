"""File resolution collaborators used by ``include`` and external stylesheets."""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol


class SourceResolver(Protocol):
	def resolve(self, name: str, parent: Optional[str]) -> str:
		"""Return the origin identity of ``name`` as referenced from ``parent``."""
		...

	def read(self, origin: str) -> str:
		...


class FileSystemResolver:
	"""Resolves dependent files on the local file system.

	Relative names are taken relative to the directory of the file that
	references them, or to ``root`` for the top-level script.
	"""

	def __init__(self, root: Optional[Path] = None) -> None:
		self.root = root if root is not None else Path.cwd()

	def resolve(self, name: str, parent: Optional[str]) -> str:
		if "://" in name:
			raise OSError(f"Remote files are not supported: '{name}'")
		path = Path(name)
		if path.is_absolute():
			return str(path)
		base = Path(parent).parent if parent else self.root
		return str((base / path).resolve())

	def read(self, origin: str) -> str:
		return Path(origin).read_text(encoding="utf-8")


class InMemoryResolver:
	"""Serves dependent files from a name -> text mapping."""

	def __init__(self, files: Optional[Mapping[str, str]] = None) -> None:
		self.files: Dict[str, str] = dict(files or {})

	def resolve(self, name: str, parent: Optional[str]) -> str:
		if name.startswith("/") or not parent:
			return posixpath.normpath(name)
		return posixpath.normpath(posixpath.join(posixpath.dirname(parent), name))

	def read(self, origin: str) -> str:
		try:
			return self.files[origin]
		except KeyError:
			raise FileNotFoundError(f"No such file: '{origin}'") from None
