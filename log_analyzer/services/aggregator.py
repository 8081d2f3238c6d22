"""
Aggregator Class - Builds trace timelines

This module loads every log artifact and aggregates the resulting entries
into one TraceTimeline per trace id.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from log_analyzer.models.data_models import FilterOptions, LogEntry, TraceTimeline
from log_analyzer.services.assembler import TraceAssembler
from log_analyzer.services.map_parser import MapFileParser
from log_analyzer.services.merger import RawFileMerger
from log_analyzer.services.parser import LogParser
from log_analyzer.services.storage import LogStore
from log_analyzer.utils.helpers import first_present

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Aggregates log entries into trace timelines.
    Responsibilities:
    - Load and parse rolling logs, map files and raw dumps
    - Filter entries by date range
    - Group entries by trace id and compute timeline metrics
    - Collect distinct filter values
    """

    def __init__(
        self,
        log_store: LogStore,
        log_parser: LogParser,
        map_parser: Optional[MapFileParser] = None,
        assembler: Optional[TraceAssembler] = None,
        merger: Optional[RawFileMerger] = None,
    ):
        self.store = log_store
        self.parser = log_parser
        self.map_parser = map_parser or MapFileParser()
        self.assembler = assembler or TraceAssembler()
        self.merger = merger or RawFileMerger()

    def load_all_entries(self) -> List[LogEntry]:
        """Parse, assemble and merge everything in the log root"""
        if not self.store.exists():
            logger.info("Log directory %s does not exist", self.store.root)
            return []

        log_entries: List[LogEntry] = []
        log_files = self.store.main_log_files()
        for path in log_files:
            text = self.store.read_text(path)
            if text is not None:
                log_entries.extend(self.parser.parse_text(text))

        map_rows = []
        map_files = self.store.map_files()
        for path in map_files:
            text = self.store.read_text(path)
            if text is not None:
                map_rows.extend(self.map_parser.parse_text(text, self.store.relative(path)))

        raw_files = self.store.raw_files()
        logger.debug(
            "Loaded %d log files, %d map files, %d raw files",
            len(log_files),
            len(map_files),
            len(raw_files),
        )

        steps = self.assembler.assemble(map_rows)
        return self.merger.merge(log_entries, steps, raw_files)

    @staticmethod
    def filter_by_window(
        entries: List[LogEntry],
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[LogEntry]:
        """Entries with date_from <= timestamp <= date_to (either bound optional)"""
        if date_from is not None:
            entries = [e for e in entries if e.timestamp >= date_from]
        if date_to is not None:
            entries = [e for e in entries if e.timestamp <= date_to]
        return entries

    @staticmethod
    def group_by_trace(entries: List[LogEntry]) -> Dict[str, List[LogEntry]]:
        """Entries per trace id, in discovery order; untraced entries are left out"""
        groups: Dict[str, List[LogEntry]] = {}
        for e in entries:
            if e.trace_id:
                groups.setdefault(e.trace_id, []).append(e)
        return groups

    def build_timelines(
        self, entries: List[LogEntry], limit: Optional[int] = None
    ) -> List[TraceTimeline]:
        """One timeline per trace id, limited to the first `limit` groups"""
        groups = list(self.group_by_trace(entries).items())
        if limit is not None and len(groups) > limit:
            logger.debug("Capping %d trace groups to %d", len(groups), limit)
            groups = groups[:limit]

        timelines: List[TraceTimeline] = []
        for trace_id, items in groups:
            timeline = self.build_timeline(trace_id, items)
            if timeline is not None:
                timelines.append(timeline)
        return timelines

    def build_timeline(self, trace_id: str, entries: List[LogEntry]) -> Optional[TraceTimeline]:
        """Timeline with derived metrics; None when empty or pure self-noise"""
        if not entries or all(self.is_noise_entry(e) for e in entries):
            return None

        ordered = sorted(entries, key=lambda e: (e.timestamp, e.step_number))
        start = ordered[0].timestamp
        end = ordered[-1].timestamp

        steps = [e for e in ordered if e.step_number > 0]
        step_durations = [
            e.relative_duration_ms for e in steps if e.relative_duration_ms is not None
        ]
        avg_step = (sum(step_durations) / len(step_durations)) if step_durations else 0.0

        return TraceTimeline(
            trace_id=trace_id,
            entries=ordered,
            start_time=start,
            end_time=end,
            total_duration_ms=(end - start).total_seconds() * 1000.0,
            total_steps=len(steps),
            avg_step_duration_ms=avg_step,
            has_errors=any(self.parser.is_error(e) for e in ordered),
            bo_type=first_present([e.bo_type for e in ordered]),
            bo_id=first_present([e.bo_id for e in ordered]),
            operation=first_present([e.operation for e in ordered]),
        )

    def is_noise_entry(self, entry: LogEntry) -> bool:
        return any(
            self.parser.is_noise(text)
            for text in (
                entry.message,
                entry.controller_action,
                entry.request_file,
                entry.response_file,
                entry.raw_file,
            )
        )

    @staticmethod
    def compute_filter_options(entries: List[LogEntry]) -> FilterOptions:
        """Distinct observed business object types, operations and directions"""
        return FilterOptions(
            bo_types=sorted({e.bo_type for e in entries if e.bo_type}),
            operations=sorted({e.operation for e in entries if e.operation}),
            directions=sorted({e.direction for e in entries if e.direction}),
        )
