from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from log_analyzer.config import AnalyzerConfig, load_config
from log_analyzer.models.data_models import (
    LogEntry,
    SearchFilters,
    StepStat,
    TraceFile,
    TraceTimeline,
)
from log_analyzer.services.filters import FilterEngine
from log_analyzer.services.storage import UnsafePathError
from log_analyzer.utils.helpers import parse_ts

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────

load_dotenv()

API_PREFIX = "/loganalyzer"
CONFIG = load_config()

logging.basicConfig(
    level=CONFIG.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def get_config() -> AnalyzerConfig:
    return CONFIG


def get_engine(config: AnalyzerConfig = Depends(get_config)) -> FilterEngine:
    """Fresh engine per request; nothing is shared between queries."""
    return FilterEngine(config)


# ──────────────────────────────────────────────────────────────────────────────
# Serialization
# ──────────────────────────────────────────────────────────────────────────────


def iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def entry_to_dict(e: LogEntry) -> Dict[str, Any]:
    return {
        "timestamp": iso(e.timestamp),
        "level": e.level,
        "message": e.message,
        "type": e.type.value,
        "trace_id": e.trace_id,
        "bo_type": e.bo_type,
        "bo_id": e.bo_id,
        "operation": e.operation,
        "direction": e.direction,
        "source": e.source,
        "controller_action": e.controller_action,
        "step_number": e.step_number,
        "duration_ms": e.duration_ms,
        "relative_duration_ms": e.relative_duration_ms,
        "status_code": e.status_code,
        "request_file": e.request_file,
        "response_file": e.response_file,
        "raw_file": e.raw_file,
        "map_file": e.map_file,
    }


def summary_to_dict(t: TraceTimeline) -> Dict[str, Any]:
    return {
        "trace_id": t.trace_id,
        "start_time": iso(t.start_time),
        "end_time": iso(t.end_time),
        "total_duration_ms": t.total_duration_ms,
        "total_steps": t.total_steps,
        "avg_step_duration_ms": t.avg_step_duration_ms,
        "has_errors": t.has_errors,
        "bo_type": t.bo_type,
        "bo_id": t.bo_id,
        "operation": t.operation,
    }


def timeline_to_dict(t: TraceTimeline) -> Dict[str, Any]:
    out = summary_to_dict(t)
    out["entries"] = [entry_to_dict(e) for e in t.entries]
    return out


def file_to_dict(f: TraceFile) -> Dict[str, Any]:
    out = asdict(f)
    out["timestamp"] = iso(f.timestamp)
    return out


def step_to_dict(s: StepStat) -> Dict[str, Any]:
    out = asdict(s)
    out["type"] = s.type.value
    return out


def parse_query_ts(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    ts = parse_ts(value)
    if ts is None:
        raise HTTPException(status_code=400, detail=f"Invalid '{name}' timestamp: {value}")
    return ts


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(title="Log Analyzer (Trace Timelines)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev OK; lock down in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ──────────────────────────────────────────────────────────────────────────────
# Traces
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/api/traces")
def traces(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    search: Optional[str] = Query(None),
    bo_type: Optional[str] = Query(None),
    bo_id: Optional[str] = Query(None),
    operation: Optional[str] = Query(None),
    has_errors: Optional[bool] = Query(None),
    min_duration_ms: Optional[float] = Query(None, ge=0),
    max_duration_ms: Optional[float] = Query(None, ge=0),
    direction: Optional[str] = Query(None),
    engine: FilterEngine = Depends(get_engine),
) -> Dict[str, Any]:
    filters = SearchFilters(
        date_from=parse_query_ts(date_from, "from"),
        date_to=parse_query_ts(date_to, "to"),
        search=search,
        bo_type=bo_type,
        bo_id=bo_id,
        operation=operation,
        has_errors=has_errors,
        min_duration_ms=min_duration_ms,
        max_duration_ms=max_duration_ms,
        direction=direction,
    )
    return {"traces": [summary_to_dict(t) for t in engine.get_traces(filters)]}


@app.get(f"{API_PREFIX}/api/trace/{{trace_id}}")
def trace_details(trace_id: str, engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    timeline = engine.get_trace(trace_id)
    if timeline is None:
        raise HTTPException(status_code=404, detail="Trace not found")
    return timeline_to_dict(timeline)


@app.get(f"{API_PREFIX}/api/trace/{{trace_id}}/files")
def trace_files(trace_id: str, engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    files: Optional[List[TraceFile]] = engine.get_trace_files(trace_id)
    if files is None:
        raise HTTPException(status_code=404, detail="Trace not found")
    return {"files": [file_to_dict(f) for f in files]}


@app.get(f"{API_PREFIX}/api/trace/{{trace_id}}/stats")
def trace_stats(trace_id: str, engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    stats = engine.get_trace_stats(trace_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Trace not found")
    out = summary_to_dict(stats.timeline)
    out["step_breakdown"] = [step_to_dict(s) for s in stats.steps]
    return out


# ──────────────────────────────────────────────────────────────────────────────
# Filter options + raw files
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/api/filters")
def filter_options(engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    return asdict(engine.get_filter_options())


@app.get(f"{API_PREFIX}/api/file/{{file_path:path}}")
def file_content(file_path: str, engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    try:
        content = engine.get_file(file_path)
    except UnsafePathError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"File not found: {file_path}")
    return {"content": content, "file_name": file_path.replace("\\", "/").rsplit("/", 1)[-1]}


# ──────────────────────────────────────────────────────────────────────────────
# Debug endpoint
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/debug")
def debug(engine: FilterEngine = Depends(get_engine)) -> Dict[str, Any]:
    return asdict(engine.get_status())


# ──────────────────────────────────────────────────────────────────────────────
# Entrypoint
# ──────────────────────────────────────────────────────────────────────────────


def main() -> None:
    uvicorn.run(app, host=CONFIG.host, port=CONFIG.port, log_level=CONFIG.log_level.lower())


if __name__ == "__main__":
    main()
