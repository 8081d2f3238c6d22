"""
Data Models (DTOs - Data Transfer Objects)

This module contains all dataclass definitions used throughout the application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class EntryType(str, Enum):
    """Classification of a single observed event"""
    REQUEST = "Request"
    RESPONSE = "Response"
    ERROR = "Error"
    RAW_LOG = "RawLog"
    AUTHENTICATION = "Authentication"
    GENERAL = "General"


@dataclass
class LogEntry:
    """
    One observed event in a trace.
    Only the file references (and missing business object tags) are
    filled in after construction, by the merger.
    """
    timestamp: datetime
    level: str
    message: str
    type: EntryType = EntryType.GENERAL
    trace_id: Optional[str] = None
    bo_type: Optional[str] = None
    bo_id: Optional[str] = None
    operation: Optional[str] = None
    direction: Optional[str] = None
    source: Optional[str] = None
    controller_action: Optional[str] = None
    step_number: int = 0
    duration_ms: Optional[int] = None
    relative_duration_ms: Optional[int] = None
    status_code: Optional[int] = None
    request_file: Optional[str] = None
    response_file: Optional[str] = None
    raw_file: Optional[str] = None
    map_file: Optional[str] = None

    @property
    def file_reference(self) -> Optional[str]:
        return self.request_file or self.response_file or self.raw_file


@dataclass(frozen=True)
class MapEntry:
    """
    One indexed step read from a Map_* file.
    relative_duration_ms is what the writer recorded (11-field rows only);
    timelines use the value recomputed from the cumulative durations.
    """
    timestamp: datetime
    step_number: int
    controller_action: str
    method_key: str
    type: EntryType
    status_code: Optional[int]
    direction: str
    source: str
    duration_ms: Optional[int]
    relative_duration_ms: Optional[int]
    relative_path: str
    map_file: Optional[str] = None


@dataclass(frozen=True)
class RawFileName:
    """What the naming convention encodes in a raw dump or map file name"""
    file_name: str
    timestamp: Optional[datetime]
    kind: Optional[EntryType]
    method_key: Optional[str]
    trace_id: Optional[str]
    bo_type: Optional[str]
    bo_id: Optional[str]
    operation: Optional[str]


@dataclass(frozen=True)
class RawFile:
    """A raw dump discovered on disk"""
    relative_path: str
    direction: str
    modified: datetime
    name: RawFileName


@dataclass
class TraceTimeline:
    """All entries of one trace, ordered, with derived metrics"""
    trace_id: str
    entries: List[LogEntry]
    start_time: datetime
    end_time: datetime
    total_duration_ms: float
    total_steps: int
    avg_step_duration_ms: float
    has_errors: bool
    bo_type: Optional[str] = None
    bo_id: Optional[str] = None
    operation: Optional[str] = None


@dataclass(frozen=True)
class SearchFilters:
    """Query parameters for trace listings"""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    bo_type: Optional[str] = None
    bo_id: Optional[str] = None
    operation: Optional[str] = None
    has_errors: Optional[bool] = None
    min_duration_ms: Optional[float] = None
    max_duration_ms: Optional[float] = None
    direction: Optional[str] = None


@dataclass
class FilterOptions:
    """Distinct values for populating selection controls"""
    bo_types: List[str] = field(default_factory=list)
    operations: List[str] = field(default_factory=list)
    directions: List[str] = field(default_factory=list)


@dataclass
class TraceFile:
    """A file referenced by a trace"""
    type: str
    path: str
    timestamp: datetime
    operation: Optional[str] = None
    step_number: int = 0
    duration_ms: Optional[int] = None
    status_code: Optional[int] = None


@dataclass
class StepStat:
    """Per-step timing row"""
    step: int
    operation: Optional[str]
    type: EntryType
    duration_ms: Optional[int]
    relative_duration_ms: Optional[int]
    status_code: Optional[int]
    direction: Optional[str]


@dataclass
class TraceStats:
    """Timeline metrics plus the per-step breakdown"""
    timeline: TraceTimeline
    steps: List[StepStat]


@dataclass
class DirectoryStatus:
    """Diagnostics of the configured log root"""
    log_directory: str
    directory_exists: bool
    log_files: List[str]
    raw_inbound_exists: bool
    raw_outbound_exists: bool
    maps_exists: bool
    raw_inbound_files: int
    raw_outbound_files: int
    map_files: int
