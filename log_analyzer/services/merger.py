"""
RawFileMerger Class - Reconciles duplicate evidence for the same step

A single call can show up twice: once as a "RAW log saved" line in the
rolling log and once as a map-derived step. Matching is a best-effort
heuristic (same trace id and type, nearest timestamp within a window), not
an exact join: two distinct calls inside the window can be paired wrongly.
"""

import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from log_analyzer.models.data_models import EntryType, LogEntry, RawFile
from log_analyzer.utils.naming import infer_kind

logger = logging.getLogger(__name__)

RAW_FILE_SOURCE = "RawFile"
STEP_TYPES = (EntryType.REQUEST, EntryType.RESPONSE)

StepKey = Tuple[str, EntryType]


class RawFileMerger:
    """
    Merges rolling-log file references into map-derived steps.
    Responsibilities:
    - Collapse a log line and a map step for the same call into one entry
    - Keep log lines that have no index row
    - Surface raw dumps whose trace has no map entry at all
    """

    def __init__(self, window_seconds: float = 30.0):
        self.window = timedelta(seconds=window_seconds)

    def merge(
        self,
        log_entries: List[LogEntry],
        step_entries: List[LogEntry],
        raw_files: Iterable[RawFile] = (),
    ) -> List[LogEntry]:
        index = self._index_steps(step_entries)

        retained: List[LogEntry] = []
        merged = 0
        for entry in log_entries:
            target = None
            if entry.file_reference and entry.trace_id:
                target = self.nearest(entry, index.get((entry.trace_id, entry.type), []))
            if target is None:
                retained.append(entry)
                continue
            self._absorb(target, entry)
            merged += 1

        combined = retained + list(step_entries)
        orphans = self.recover_orphans(raw_files, step_entries, combined)
        logger.debug(
            "Merged %d log references into steps, kept %d log entries, recovered %d orphans",
            merged,
            len(retained),
            len(orphans),
        )
        return combined + orphans

    def nearest(self, entry: LogEntry, candidates: List[LogEntry]) -> Optional[LogEntry]:
        """Closest candidate by absolute time delta, inside the window"""
        best: Optional[LogEntry] = None
        best_key: Optional[Tuple[timedelta, int]] = None
        for candidate in candidates:
            delta = abs(candidate.timestamp - entry.timestamp)
            if delta > self.window:
                continue
            key = (delta, candidate.step_number)
            if best_key is None or key < best_key:
                best, best_key = candidate, key
        return best

    def recover_orphans(
        self,
        raw_files: Iterable[RawFile],
        step_entries: List[LogEntry],
        known_entries: List[LogEntry],
    ) -> List[LogEntry]:
        """Minimal entries for raw dumps whose trace id has no map entry"""
        mapped: Set[str] = {e.trace_id for e in step_entries if e.trace_id}
        referenced: Set[str] = {
            ref
            for e in known_entries
            for ref in (e.request_file, e.response_file, e.raw_file)
            if ref
        }

        orphans: List[LogEntry] = []
        for raw in raw_files:
            trace_id = raw.name.trace_id
            if trace_id is None or trace_id in mapped or raw.relative_path in referenced:
                continue
            orphans.append(self.entry_from_raw_file(raw))
            referenced.add(raw.relative_path)
        return orphans

    @staticmethod
    def entry_from_raw_file(raw: RawFile) -> LogEntry:
        name = raw.name
        kind = infer_kind(name.kind, raw.direction)
        label = kind.value if kind else "Raw file"

        return LogEntry(
            timestamp=name.timestamp or raw.modified,
            level="INFO",
            message=f"{raw.direction} {label}: {name.method_key or name.file_name}",
            type=kind or EntryType.RAW_LOG,
            trace_id=name.trace_id,
            bo_type=name.bo_type,
            bo_id=name.bo_id,
            operation=name.operation,
            direction=raw.direction,
            source=RAW_FILE_SOURCE,
            request_file=raw.relative_path if kind is EntryType.REQUEST else None,
            response_file=raw.relative_path if kind is EntryType.RESPONSE else None,
            raw_file=raw.relative_path if kind is None else None,
        )

    @staticmethod
    def _index_steps(step_entries: List[LogEntry]) -> Dict[StepKey, List[LogEntry]]:
        index: Dict[StepKey, List[LogEntry]] = {}
        for step in step_entries:
            if step.trace_id and step.type in STEP_TYPES:
                index.setdefault((step.trace_id, step.type), []).append(step)
        return index

    @staticmethod
    def _absorb(target: LogEntry, duplicate: LogEntry) -> None:
        """Copy what the log line knows onto the step it duplicates"""
        if duplicate.request_file and not target.request_file:
            target.request_file = duplicate.request_file
        if duplicate.response_file and not target.response_file:
            target.response_file = duplicate.response_file
        if duplicate.map_file and not target.map_file:
            target.map_file = duplicate.map_file
        if duplicate.bo_type and not target.bo_type:
            target.bo_type = duplicate.bo_type
            target.bo_id = duplicate.bo_id
        if duplicate.operation and not target.operation:
            target.operation = duplicate.operation
