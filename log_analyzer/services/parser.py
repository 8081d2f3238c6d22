"""
LogParser Class - Handles parsing and classification of rolling log files

This module parses raw log lines into structured LogEntry objects.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dateutil import tz

from log_analyzer.config import AnalyzerConfig
from log_analyzer.models.data_models import EntryType, LogEntry
from log_analyzer.utils.helpers import parse_ts, to_posix
from log_analyzer.utils.naming import (
    NO_TRACE_RE,
    UUID_RE,
    business_object_from_text,
    infer_kind,
    is_map_file_name,
    kind_from_name,
    normalize_trace_id,
    trace_id_from_name,
)

logger = logging.getLogger(__name__)

LOG_LINE_RE = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}) "
    r"\[(?P<level>\w+)\] (?P<message>.*)$"
)
RAW_SAVED_PATH_RE = re.compile(r"saved:\s*(?P<path>\S+)", re.IGNORECASE)
HEADER_TOKEN_PATTERN = r"[:=\s]+(?P<token>[A-Za-z0-9_-]{20,})"

LOG_SOURCE = "Log"


@dataclass(frozen=True)
class TypeRule:
    """One step of the ordered type classification"""
    entry_type: EntryType
    keywords: Tuple[str, ...]
    levels: Tuple[str, ...] = ()

    def matches(self, message: str, level: str) -> bool:
        return any(k in message for k in self.keywords) or level in self.levels


# Evaluated top to bottom, first match wins
TYPE_RULES: Tuple[TypeRule, ...] = (
    TypeRule(EntryType.RAW_LOG, ("raw log saved", "raw file saved")),
    TypeRule(EntryType.REQUEST, ("request", "calling")),
    TypeRule(EntryType.RESPONSE, ("response", "received")),
    TypeRule(EntryType.ERROR, ("error", "exception"), levels=("ERROR",)),
    TypeRule(EntryType.AUTHENTICATION, ("otcsticket", "ticket", "authentication")),
)

# Independent of TYPE_RULES; evaluated top to bottom
OPERATION_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("masterdata", "master data"), "MasterData"),
    (("classification",), "Classification"),
    (("workspace",), "BusinessWorkspace"),
    (("node",), "Node"),
    (("authentication", "otcsticket"), "Authentication"),
    (("search",), "Search"),
)


def _header_regex(header_name: str) -> "re.Pattern[str]":
    parts = [re.escape(p) for p in re.split(r"[-_]", header_name) if p]
    return re.compile("[-_]".join(parts) + HEADER_TOKEN_PATTERN, re.IGNORECASE)


class LogParser:
    """
    Parses rolling log files into LogEntry objects.
    Responsibilities:
    - Match the "<timestamp> [<LEVEL>] <message>" line format
    - Drop the analyzer's own traffic and browser noise
    - Extract trace id and business object tags
    - Classify entries (type and operation, independently)
    """

    def __init__(self, config: AnalyzerConfig):
        self.noise_markers = tuple(m.lower() for m in config.noise_markers)
        self.header_re = _header_regex(config.trace_header_name)
        self.inbound_folder = to_posix(config.raw_inbound_subfolder).strip("/").lower()
        self.outbound_folder = to_posix(config.raw_outbound_subfolder).strip("/").lower()
        self.log_tz = tz.gettz(config.log_timezone) if config.log_timezone else None
        if self.log_tz is None:
            raise ValueError(f"Unknown log timezone: {config.log_timezone!r}")

    def parse_text(self, text: str) -> List[LogEntry]:
        """Parse the full text of one log file; unmatched lines are skipped"""
        entries: List[LogEntry] = []
        lines = text.splitlines()
        for line in lines:
            entry = self.parse_line(line)
            if entry:
                entries.append(entry)
        logger.debug("Parsed %d entries from %d lines", len(entries), len(lines))
        return entries

    def parse_line(self, line: str) -> Optional[LogEntry]:
        m = LOG_LINE_RE.match(line.rstrip("\r\n"))
        if not m:
            return None

        message = m.group("message")
        if self.is_noise(message):
            return None

        ts = parse_ts(m.group("timestamp"), self.log_tz)
        if ts is None:
            return None

        level = m.group("level").upper()
        bo_type, bo_id = business_object_from_text(message)

        entry = LogEntry(
            timestamp=ts,
            level=level,
            message=message,
            trace_id=self.extract_trace_id(message),
            bo_type=bo_type,
            bo_id=bo_id,
            operation=self.classify_operation(message),
            source=LOG_SOURCE,
        )
        self.classify(entry)
        return entry

    def is_noise(self, text: Optional[str]) -> bool:
        """True for the analyzer's own routes/name and browser noise"""
        if not text:
            return False
        lowered = text.lower()
        return any(marker in lowered for marker in self.noise_markers)

    def extract_trace_id(self, message: str) -> Optional[str]:
        m = UUID_RE.search(message)
        if m:
            return normalize_trace_id(m.group(0))

        m = self.header_re.search(message)
        if m:
            return normalize_trace_id(m.group("token"))

        m = NO_TRACE_RE.search(message)
        if m:
            return normalize_trace_id(m.group(0))
        return None

    def classify(self, entry: LogEntry) -> None:
        """Assign entry.type from the first matching rule in TYPE_RULES"""
        message = entry.message.lower()
        entry.type = EntryType.GENERAL
        for rule in TYPE_RULES:
            if rule.matches(message, entry.level):
                entry.type = rule.entry_type
                break

        if entry.type is EntryType.RAW_LOG:
            self._classify_raw_saved(entry)

    @staticmethod
    def classify_operation(message: str) -> Optional[str]:
        lowered = message.lower()
        for keywords, operation in OPERATION_RULES:
            if any(k in lowered for k in keywords):
                return operation
        return None

    def _classify_raw_saved(self, entry: LogEntry) -> None:
        """Sub-parse the path of a "RAW log saved: <path>" line"""
        m = RAW_SAVED_PATH_RE.search(entry.message)
        if not m:
            return

        path = to_posix(m.group("path")).strip("/")
        lowered = path.lower()
        if lowered.startswith(self.inbound_folder + "/"):
            entry.direction = "Inbound"
        elif lowered.startswith(self.outbound_folder + "/"):
            entry.direction = "Outbound"

        if entry.trace_id is None:
            entry.trace_id = trace_id_from_name(path)

        if is_map_file_name(path):
            entry.map_file = path
            return

        kind = infer_kind(kind_from_name(path), entry.direction)
        if kind is EntryType.REQUEST:
            entry.type = EntryType.REQUEST
            entry.request_file = path
        elif kind is EntryType.RESPONSE:
            entry.type = EntryType.RESPONSE
            entry.response_file = path
        else:
            entry.raw_file = path

        if entry.bo_type is None:
            entry.bo_type, entry.bo_id = business_object_from_text(path)

    @staticmethod
    def is_error(entry: LogEntry) -> bool:
        """Check if entry represents an error (Error type or ERROR level)"""
        if entry.type is EntryType.ERROR:
            return True
        if (entry.level or "").upper() == "ERROR":
            return True
        return False
