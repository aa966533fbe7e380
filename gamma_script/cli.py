"""Command line entry point: compile a script and print diagnostics."""

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import List, Optional

from .engine import CompilationArtifacts, ScriptCompilerEngine
from .hcode import format_hcodes
from .settings import COMPILER_VERSION
from .sources import FileSystemResolver


def _print_tokens(artifacts: CompilationArtifacts) -> None:
	print("Tokens:")
	for token in artifacts.tokens:
		start = token.span.start
		print(f"  {start.line:4d}:{start.column:<3d} {token.kind.name:<9} {token.lexeme!r}")


def _print_listing(artifacts: CompilationArtifacts) -> None:
	print("H-codes:")
	for line in format_hcodes(artifacts.hcodes):
		print(line)


def main(argv: Optional[List[str]] = None) -> int:
	parser = ArgumentParser(prog="gamma_script", description="Compile a Gamma script into h-codes.")
	parser.add_argument("file", type=str)
	parser.add_argument("--tokens", action="store_true", help="print the token list")
	parser.add_argument("--listing", action="store_true", help="print the h-code listing")
	parser.add_argument("--verbose", action="store_true", help="enable debug logging")
	parser.add_argument("--version", action="version", version=f"%(prog)s {COMPILER_VERSION}")
	args = parser.parse_args(argv)

	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	path = Path(args.file)
	try:
		source = path.read_text(encoding="utf-8")
	except OSError as exc:
		print(f"[ERROR] {path}: {exc}", file=sys.stderr)
		return 1

	origin = str(path.resolve())
	engine = ScriptCompilerEngine(resolver=FileSystemResolver(path.resolve().parent))
	artifacts = engine.compile(source, origin=origin)

	for diag in artifacts.diagnostics:
		if diag.span is not None:
			where = f"{diag.span.origin or args.file}:{diag.span.start.line}:{diag.span.start.column}"
		else:
			where = args.file
		print(f"[{diag.severity.name}] {where}: {diag.message}")

	if args.tokens:
		_print_tokens(artifacts)
	if args.listing and artifacts.ok:
		_print_listing(artifacts)

	status = "OK" if artifacts.ok else "FAILED"
	print(
		f"{status}: {len(artifacts.tokens)} tokens, {len(artifacts.hcodes)} h-codes, "
		f"{len(artifacts.dependencies)} dependencies in {artifacts.duration_ms:.2f} ms"
	)
	return 0 if artifacts.ok else 1


if __name__ == "__main__":
	sys.exit(main())
