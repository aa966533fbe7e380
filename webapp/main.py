from __future__ import annotations

import logging
from dataclasses import is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from gamma_script import CompilationArtifacts, InMemoryResolver, ScriptCompilerEngine, __version__, format_hcodes, hcode_to_json
from webapp.interpreter import HCodeInterpreter

logger = logging.getLogger(__name__)

app = FastAPI(title="Gamma Script Compiler", version=__version__)

STATIC_DIR = Path(__file__).parent / "static"
if STATIC_DIR.exists():
	app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)


class CompileRequest(BaseModel):
	source: str
	# Name of the script; include and stylesheet names resolve relative to it.
	origin: Optional[str] = None
	# Files reachable through include / external stylesheet statements.
	files: Dict[str, str] = Field(default_factory=dict)


class RunRequest(CompileRequest):
	max_steps: int = Field(50_000, gt=0)


def _to_json(obj: Any, *, depth: int = 0, max_depth: int = 12) -> Any:
	"""Best-effort conversion of compiler artifacts to JSON-safe structures."""
	if depth > max_depth:
		return {"_truncated": True}
	if obj is None:
		return None
	if isinstance(obj, (str, int, float, bool)):
		return obj
	if isinstance(obj, (list, tuple)):
		return [_to_json(x, depth=depth + 1, max_depth=max_depth) for x in obj]
	if isinstance(obj, dict):
		return {str(k): _to_json(v, depth=depth + 1, max_depth=max_depth) for k, v in obj.items()}
	if is_dataclass(obj):
		data: Dict[str, Any] = {"_type": obj.__class__.__name__}
		for k, v in obj.__dict__.items():
			data[k] = _to_json(v, depth=depth + 1, max_depth=max_depth)
		return data
	# Enums (Severity/TokenKind/etc.)
	if hasattr(obj, "name") and hasattr(obj, "value"):
		return getattr(obj, "name")
	return str(obj)


def _compile(req: CompileRequest) -> CompilationArtifacts:
	engine = ScriptCompilerEngine(resolver=InMemoryResolver(req.files))
	return engine.compile(req.source, origin=req.origin)


def _diagnostics(art: CompilationArtifacts) -> List[Dict[str, Any]]:
	return [
		{
			"severity": d.severity.name,
			"message": d.message,
			"hint": d.hint,
			"span": _to_json(d.span),
		}
		for d in art.diagnostics
	]


def _report(art: CompilationArtifacts) -> Dict[str, Any]:
	return {
		"duration_ms": art.duration_ms,
		"token_count": len(art.tokens),
		"diagnostic_count": len(art.diagnostics),
		"ok": art.ok,
		"diagnostics": _diagnostics(art),
		"tokens": [
			{
				"kind": t.kind.name,
				"lexeme": t.lexeme,
				"value": _to_json(t.value),
				"span": _to_json(t.span),
			}
			for t in art.tokens
			if not t.is_eof
		],
		"listing": format_hcodes(art.hcodes),
		"hcodes": [hcode_to_json(code) for code in art.hcodes],
		"settings": art.settings.model_dump(),
		"stylesheet": _to_json(art.stylesheet),
		"dependencies": list(art.dependencies),
		"is_animated": art.is_animated,
		"has_display_variables": art.has_display_variables,
	}


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
	index_path = STATIC_DIR / "index.html"
	if index_path.exists():
		return HTMLResponse(index_path.read_text(encoding="utf-8"))
	return HTMLResponse(
		"<h2>Gamma Script Compiler API</h2>"
		"<p>POST <code>/api/compile</code> with JSON: <code>{\"source\": \"...\", \"files\": {}}</code></p>"
		"<p>POST <code>/api/run</code> to compile and run the arithmetic subset.</p>"
	)


@app.get("/health")
def health() -> Dict[str, str]:
	return {"status": "ok"}


@app.post("/api/compile")
def compile_source(req: CompileRequest) -> Dict[str, Any]:
	art = _compile(req)
	return _report(art)


@app.post("/api/run")
def run_source(req: RunRequest) -> Dict[str, Any]:
	art = _compile(req)
	result = _report(art)

	output = ""
	runtime_error = None
	steps = 0
	if art.ok:
		interp = HCodeInterpreter(max_steps=req.max_steps)
		run_art = interp.run(art.hcodes, art.settings)
		output = run_art.output
		steps = run_art.steps
		if run_art.runtime_error is not None:
			logger.info("Run stopped: %s", run_art.runtime_error.message)
			runtime_error = {"message": run_art.runtime_error.message, "span": _to_json(run_art.runtime_error.span)}

	result["run"] = {
		"output": output,
		"steps": steps,
		"runtime_error": runtime_error,
	}
	return result
