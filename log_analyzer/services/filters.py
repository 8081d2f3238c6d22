"""
FilterEngine Class - Query facade over trace timelines

This module applies date, structured and free-text filters and exposes the
operations the HTTP layer calls.
"""

import logging
import re
from typing import List, Optional, Set, Tuple

from log_analyzer.config import AnalyzerConfig
from log_analyzer.models.data_models import (
    DirectoryStatus,
    FilterOptions,
    SearchFilters,
    StepStat,
    TraceFile,
    TraceStats,
    TraceTimeline,
)
from log_analyzer.services.aggregator import Aggregator
from log_analyzer.services.merger import RawFileMerger
from log_analyzer.services.parser import LogParser
from log_analyzer.services.storage import Clock, LogStore
from log_analyzer.utils.helpers import parse_ts
from log_analyzer.utils.naming import normalize_trace_id

logger = logging.getLogger(__name__)

TRACE_TOKEN_RE = re.compile(r"^[a-z0-9_-]{15,}$")
BO_TYPE_TERM_RE = re.compile(r"^bus\d+$")
DIGITS_RE = re.compile(r"^\d+$")

SEARCH_TRACE_ID = "trace_id"
SEARCH_BO_TYPE = "bo_type"
SEARCH_BO_ID = "bo_id"
SEARCH_TEXT = "text"


def search_target(term: str) -> str:
    """
    Which field a free-text term is matched against.
    First rule wins: long opaque token -> trace id, busNNN -> bo type,
    digits -> bo id, anything else -> substring over everything.
    """
    term = term.strip().lower()
    if TRACE_TOKEN_RE.match(term):
        return SEARCH_TRACE_ID
    if BO_TYPE_TERM_RE.match(term):
        return SEARCH_BO_TYPE
    if DIGITS_RE.match(term):
        return SEARCH_BO_ID
    return SEARCH_TEXT


def matches_search(timeline: TraceTimeline, search: str) -> bool:
    term = search.strip().lower()
    if not term:
        return True

    target = search_target(term)
    if target == SEARCH_TRACE_ID:
        wanted = (normalize_trace_id(term) or term).lower()
        return wanted in timeline.trace_id.lower()
    if target == SEARCH_BO_TYPE:
        return term in (timeline.bo_type or "").lower()
    if target == SEARCH_BO_ID:
        return term in (timeline.bo_id or "")

    fields = (timeline.trace_id, timeline.bo_type, timeline.bo_id, timeline.operation)
    if any(term in (f or "").lower() for f in fields):
        return True
    return any(term in e.message.lower() for e in timeline.entries)


def _same(value: Optional[str], wanted: str) -> bool:
    return (value or "").lower() == wanted.strip().lower()


def passes_filters(timeline: TraceTimeline, filters: SearchFilters) -> bool:
    """Relevance filters; the date range is applied to entries beforehand"""
    if filters.search and not matches_search(timeline, filters.search):
        return False
    if filters.bo_type and not _same(timeline.bo_type, filters.bo_type):
        return False
    if filters.bo_id and not _same(timeline.bo_id, filters.bo_id):
        return False
    if filters.operation and not _same(timeline.operation, filters.operation):
        return False
    if filters.has_errors is not None and timeline.has_errors != filters.has_errors:
        return False
    if filters.min_duration_ms is not None and timeline.total_duration_ms < filters.min_duration_ms:
        return False
    if filters.max_duration_ms is not None and timeline.total_duration_ms > filters.max_duration_ms:
        return False
    if filters.direction and not any(_same(e.direction, filters.direction) for e in timeline.entries):
        return False
    return True


class FilterEngine:
    """
    Query facade used by the HTTP layer.
    Every call re-reads the log root; nothing is cached between calls.
    """

    def __init__(self, config: AnalyzerConfig, clock: Optional[Clock] = None):
        self.config = config
        self.store = LogStore(config, clock)
        self.aggregator = Aggregator(
            self.store,
            LogParser(config),
            merger=RawFileMerger(config.merge_window_seconds),
        )

    def get_traces(self, filters: Optional[SearchFilters] = None) -> List[TraceTimeline]:
        """
        Timelines newest first.
        The max_traces cap is applied to the trace groups in discovery order
        before relevance filtering, so a filtered listing can hold fewer
        matches than actually exist.
        """
        filters = filters or SearchFilters()
        entries = self.aggregator.load_all_entries()
        entries = self.aggregator.filter_by_window(
            entries, parse_ts(filters.date_from), parse_ts(filters.date_to)
        )

        timelines = self.aggregator.build_timelines(entries, limit=self.config.max_traces)
        result = [t for t in timelines if passes_filters(t, filters)]
        result.sort(key=lambda t: (t.start_time, t.trace_id), reverse=True)

        logger.debug("Listing %d of %d traces", len(result), len(timelines))
        return result

    def get_trace(self, trace_id: str) -> Optional[TraceTimeline]:
        """Timeline for one trace, or None when the id is unknown"""
        wanted = normalize_trace_id(trace_id)
        if wanted is None:
            return None
        entries = [e for e in self.aggregator.load_all_entries() if e.trace_id == wanted]
        return self.aggregator.build_timeline(wanted, entries)

    def get_filter_options(self) -> FilterOptions:
        return self.aggregator.compute_filter_options(self.aggregator.load_all_entries())

    def get_file(self, path: str) -> str:
        """Raw text of a file under the log root"""
        return self.store.read_file(path)

    def get_trace_files(self, trace_id: str) -> Optional[List[TraceFile]]:
        """Request, response, raw and map files referenced by a trace"""
        timeline = self.get_trace(trace_id)
        if timeline is None:
            return None

        files: List[TraceFile] = []
        seen: Set[Tuple[str, str]] = set()

        def add(kind: str, path: Optional[str], **extra) -> None:
            if not path or (kind, path) in seen:
                return
            seen.add((kind, path))
            files.append(TraceFile(type=kind, path=path, **extra))

        for e in timeline.entries:
            step = dict(
                timestamp=e.timestamp,
                operation=e.operation,
                step_number=e.step_number,
                duration_ms=e.duration_ms,
            )
            add("request", e.request_file, **step)
            add("response", e.response_file, status_code=e.status_code, **step)
            add("raw", e.raw_file, **step)
            add("map", e.map_file, timestamp=e.timestamp)

        files.sort(key=lambda f: f.timestamp)
        return files

    def get_trace_stats(self, trace_id: str) -> Optional[TraceStats]:
        timeline = self.get_trace(trace_id)
        if timeline is None:
            return None

        steps = [
            StepStat(
                step=e.step_number,
                operation=e.operation,
                type=e.type,
                duration_ms=e.duration_ms,
                relative_duration_ms=e.relative_duration_ms,
                status_code=e.status_code,
                direction=e.direction,
            )
            for e in timeline.entries
            if e.duration_ms is not None
        ]
        steps.sort(key=lambda s: s.step)
        return TraceStats(timeline=timeline, steps=steps)

    def get_status(self) -> DirectoryStatus:
        return self.store.stat()
