"""
Export the token list of a Gamma script into an Excel-friendly CSV file.

Columns: Line Number, Char Number, Type, Value

Run:
  python -X utf8 export_tokens.py script.gs [tokens.csv]

Without an output name the CSV is written next to the script as
<script>_tokens.csv.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from gamma_script import CompilationError, Token, tokenize


def fmt_value(token: Token) -> str:
	if token.is_eof:
		return "<EOF>"
	if token.is_number:
		value = float(token.value)
		return str(int(value)) if value.is_integer() else repr(value)
	return str(token.value)


def export_tokens_csv(tokens: Iterable[Token], out_path: Path) -> int:
	count = 0
	with out_path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerow(["Line Number", "Char Number", "Type", "Value"])
		for token in tokens:
			start = token.span.start
			w.writerow([start.line, start.column, token.kind.name, fmt_value(token)])
			count += 1
	return count


def main(argv: Optional[List[str]] = None) -> int:
	args = sys.argv[1:] if argv is None else argv
	if not args or len(args) > 2:
		print("usage: export_tokens.py <script> [out.csv]", file=sys.stderr)
		return 2

	script = Path(args[0])
	out_path = Path(args[1]) if len(args) > 1 else script.with_name(f"{script.stem}_tokens.csv")
	try:
		tokens = tokenize(script.read_text(encoding="utf-8"), str(script))
	except OSError as exc:
		print(f"[ERROR] {script}: {exc}", file=sys.stderr)
		return 1
	except CompilationError as exc:
		print(f"[ERROR] {exc}", file=sys.stderr)
		return 1

	count = export_tokens_csv(tokens, out_path)
	print(f"Wrote {count} tokens to {out_path}")
	return 0


if __name__ == "__main__":
	sys.exit(main())
