"""
TraceAssembler Class - Turns map rows into ordered trace steps

This module groups MapEntry records by trace id and synthesizes one
LogEntry per step, including the step-to-step (relative) duration.
"""

import logging
from typing import Dict, List, Optional

from log_analyzer.models.data_models import EntryType, LogEntry, MapEntry
from log_analyzer.utils.naming import (
    operation_from_name,
    parse_raw_file_name,
    trace_id_from_name,
)

logger = logging.getLogger(__name__)


class TraceAssembler:
    """
    Assembles map rows into per-trace step entries.
    Responsibilities:
    - Group rows by the trace id embedded in their file paths
    - Order each group by step number
    - Compute relative durations from the cumulative ones
    """

    def assemble(self, entries: List[MapEntry]) -> List[LogEntry]:
        steps: List[LogEntry] = []
        for trace_id, items in self.group(entries).items():
            relative = self.relative_durations([e.duration_ms for e in items])
            for item, rel in zip(items, relative):
                if item.relative_duration_ms is not None and item.relative_duration_ms != rel:
                    logger.debug(
                        "Trace %s step %d: map file records %d ms, computed %s ms",
                        trace_id,
                        item.step_number,
                        item.relative_duration_ms,
                        rel,
                    )
                steps.append(self.to_log_entry(trace_id, item, rel))
        return steps

    def group(self, entries: List[MapEntry]) -> Dict[str, List[MapEntry]]:
        """Rows per trace id, each list ordered by step number"""
        groups: Dict[str, List[MapEntry]] = {}
        orphans = 0
        for entry in entries:
            trace_id = self.trace_id_for(entry)
            if trace_id is None:
                orphans += 1
                continue
            groups.setdefault(trace_id, []).append(entry)

        for items in groups.values():
            items.sort(key=lambda e: (e.step_number, e.timestamp))

        if orphans:
            logger.debug("%d map rows carry no recoverable trace id", orphans)
        return groups

    @staticmethod
    def trace_id_for(entry: MapEntry) -> Optional[str]:
        trace_id = trace_id_from_name(entry.relative_path)
        if trace_id is None and entry.map_file:
            trace_id = trace_id_from_name(entry.map_file)
        return trace_id

    @staticmethod
    def relative_durations(durations: List[Optional[int]]) -> List[Optional[int]]:
        """
        Step-to-step durations from cumulative ones.

        Step i gets duration[i] - duration[i-1] when the previous cumulative
        value is non-zero, otherwise its absolute duration. A leading step
        at cumulative 0 marks the trace start and takes the gap to the next
        timed step: [0, 120, 350] -> [120, 120, 230].
        """
        relative: List[Optional[int]] = []
        for i, current in enumerate(durations):
            if current is None:
                relative.append(None)
                continue

            previous = durations[i - 1] if i > 0 else None
            if previous:
                relative.append(current - previous)
            elif i == 0 and current == 0:
                following = next((d for d in durations[1:] if d), None)
                relative.append(following if following is not None else 0)
            else:
                relative.append(current)
        return relative

    @staticmethod
    def to_log_entry(trace_id: str, entry: MapEntry, relative: Optional[int]) -> LogEntry:
        name = parse_raw_file_name(entry.relative_path)
        failed = entry.status_code is not None and entry.status_code >= 400

        message = f"{entry.direction} {entry.type.value}: {entry.method_key}"
        if entry.status_code is not None:
            message += f" ({entry.status_code})"

        return LogEntry(
            timestamp=entry.timestamp,
            level="ERROR" if failed else "INFO",
            message=message,
            type=entry.type,
            trace_id=trace_id,
            bo_type=name.bo_type,
            bo_id=name.bo_id,
            operation=name.operation or operation_from_name(entry.method_key),
            direction=entry.direction or None,
            source=entry.source or None,
            controller_action=entry.controller_action or None,
            step_number=entry.step_number,
            duration_ms=entry.duration_ms,
            relative_duration_ms=relative,
            status_code=entry.status_code,
            request_file=entry.relative_path if entry.type is EntryType.REQUEST else None,
            response_file=entry.relative_path if entry.type is EntryType.RESPONSE else None,
            map_file=entry.map_file,
        )
