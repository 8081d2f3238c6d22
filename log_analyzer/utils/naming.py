"""
Naming convention parser

Raw dumps and map files carry trace identity, step kind, timestamp and
business object tags in their file names only. This module is the one place
that reads those conventions; everything else works with RawFileName.

    20250513101500_request_v1_MasterData_BUS1001006_403669_<trace>.txt
    20250513101501_response_create_avatar_NoTrace_20250513101500123.txt
    Map_<trace>.txt / Map_<trace>_002.txt
"""

import os
import re
from datetime import datetime, timezone
from typing import Optional, Tuple

from log_analyzer.models.data_models import EntryType, RawFileName

UUID_PATTERN = (
    r"[0-9a-f]{8}[-_][0-9a-f]{4}[-_][0-9a-f]{4}[-_][0-9a-f]{4}[-_][0-9a-f]{12}"
)
UUID_RE = re.compile(rf"(?<![0-9a-f]){UUID_PATTERN}(?![0-9a-f])", re.IGNORECASE)
NO_TRACE_RE = re.compile(r"NoTrace_(\d{14})\d*", re.IGNORECASE)
OPAQUE_TOKEN_RE = re.compile(r"^[A-Za-z0-9-]{20,}$")
TIMESTAMP_PREFIX_RE = re.compile(r"^(\d{14})_")
MAP_VERSION_RE = re.compile(r"_\d{3}$")
BUSINESS_OBJECT_RE = re.compile(r"(?<![A-Za-z0-9])(BUS\d{4,7})_(\d{6})(?!\d)")

MAP_PREFIX = "Map_"
NO_TRACE_PREFIX = "NoTrace_"
RAW_SUFFIX = ".txt"

# Ordered: first keyword hit wins
FILE_OPERATION_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("masterdata",), "MasterData"),
    (("auth",), "Authentication"),
    (("classification",), "Classification"),
    (("workspace",), "BusinessWorkspace"),
    (("child_node", "nodes"), "Node"),
    (("member",), "Member"),
    (("search",), "Search"),
)


def normalize_trace_id(value: Optional[str]) -> Optional[str]:
    """Canonical trace identity: NoTrace_<14 digits> or lowercase hyphenated"""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    m = NO_TRACE_RE.search(value)
    if m:
        return NO_TRACE_PREFIX + m.group(1)
    if value.lower().startswith(NO_TRACE_PREFIX.lower()):
        return NO_TRACE_PREFIX + value[len(NO_TRACE_PREFIX):]
    return value.replace("_", "-").lower()


def _stem(name: str) -> str:
    base = os.path.basename(name.replace("\\", "/"))
    if base.lower().endswith(RAW_SUFFIX):
        base = base[: -len(RAW_SUFFIX)]
    return base


def _find_trace_token(stem: str) -> Tuple[Optional[str], int]:
    """(normalized trace id, index where the token starts) or (None, len)"""
    m = NO_TRACE_RE.search(stem)
    if m:
        return normalize_trace_id(m.group(0)), m.start()

    matches = list(UUID_RE.finditer(stem))
    if matches:
        last = matches[-1]
        return normalize_trace_id(last.group(0)), last.start()

    head, sep, tail = stem.rpartition("_")
    if OPAQUE_TOKEN_RE.match(tail):
        return normalize_trace_id(tail), len(head) + len(sep)
    return None, len(stem)


def trace_id_from_name(name: str) -> Optional[str]:
    """Trace id embedded in a raw dump or map file name"""
    stem = _stem(name)
    if stem.startswith(MAP_PREFIX):
        stem = MAP_VERSION_RE.sub("", stem[len(MAP_PREFIX):])
    trace_id, _ = _find_trace_token(stem)
    return trace_id


def timestamp_from_name(name: str) -> Optional[datetime]:
    m = TIMESTAMP_PREFIX_RE.match(_stem(name))
    if not m:
        return None
    try:
        return datetime.strptime(m.group(1), "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def operation_from_name(name: str) -> Optional[str]:
    lowered = name.lower()
    for keywords, operation in FILE_OPERATION_RULES:
        if any(k in lowered for k in keywords):
            return operation
    return None


def business_object_from_text(text: str) -> Tuple[Optional[str], Optional[str]]:
    m = BUSINESS_OBJECT_RE.search(text)
    if not m:
        return None, None
    return m.group(1), m.group(2)


def kind_from_name(name: str) -> Optional[EntryType]:
    lowered = "_" + _stem(name).lower() + "_"
    if "_request_" in lowered:
        return EntryType.REQUEST
    if "_response_" in lowered:
        return EntryType.RESPONSE
    return None


def infer_kind(kind: Optional[EntryType], direction: Optional[str]) -> Optional[EntryType]:
    """Outbound dumps are written without a marker and hold the remote response"""
    if kind is None and direction == "Outbound":
        return EntryType.RESPONSE
    return kind


def is_map_file_name(name: str) -> bool:
    base = os.path.basename(name.replace("\\", "/"))
    return base.startswith(MAP_PREFIX) and base.lower().endswith(RAW_SUFFIX)


def parse_raw_file_name(name: str) -> RawFileName:
    """Everything the naming convention encodes in a raw dump file name"""
    stem = _stem(name)
    trace_id, token_start = _find_trace_token(stem)

    body = stem[:token_start]
    ts_match = TIMESTAMP_PREFIX_RE.match(body)
    if ts_match:
        body = body[ts_match.end():]
    body = body.strip("_")
    for marker in ("request_", "response_"):
        if body.lower().startswith(marker):
            body = body[len(marker):]
            break

    bo_type, bo_id = business_object_from_text(stem)

    return RawFileName(
        file_name=os.path.basename(name.replace("\\", "/")),
        timestamp=timestamp_from_name(stem),
        kind=kind_from_name(stem),
        method_key=body or None,
        trace_id=trace_id,
        bo_type=bo_type,
        bo_id=bo_id,
        operation=operation_from_name(body or stem),
    )
