"""
MapFileParser Class - Parses Map_* trace index files

Each row is one step written next to a raw dump:

    timestamp,step,controller_action,method_key,type,status,direction,source,duration[,relative],path

The relative duration column only exists in the newer 11-field layout; the
relative path is always the last field.
"""

import logging
from typing import List, Optional

from log_analyzer.models.data_models import EntryType, MapEntry
from log_analyzer.utils.helpers import parse_ts, safe_int, to_posix

logger = logging.getLogger(__name__)

MIN_FIELDS = 10
WIDE_FIELDS = 11

MAP_TYPES = {
    "request": EntryType.REQUEST,
    "response": EntryType.RESPONSE,
}


class MapFileParser:
    """
    Parses Map_* index files into MapEntry objects.
    Rows with fewer than 10 fields, no usable timestamp or an unknown
    type are dropped; numeric fields degrade to None.
    """

    def parse_text(self, text: str, map_file: Optional[str] = None) -> List[MapEntry]:
        entries: List[MapEntry] = []
        dropped = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            entry = self.parse_row(line, map_file)
            if entry is None:
                dropped += 1
                continue
            entries.append(entry)

        if dropped:
            logger.warning("Dropped %d malformed rows in %s", dropped, map_file or "<map>")
        return entries

    @staticmethod
    def parse_row(line: str, map_file: Optional[str] = None) -> Optional[MapEntry]:
        fields = [f.strip() for f in line.strip().split(",")]
        if len(fields) < MIN_FIELDS:
            return None

        ts = parse_ts(fields[0])
        if ts is None:
            return None

        entry_type = MAP_TYPES.get(fields[4].lower())
        if entry_type is None:
            return None

        status_code = safe_int(fields[5]) if entry_type is EntryType.RESPONSE else None
        relative = safe_int(fields[9]) if len(fields) >= WIDE_FIELDS else None

        return MapEntry(
            timestamp=ts,
            step_number=safe_int(fields[1]) or 0,
            controller_action=fields[2],
            method_key=fields[3],
            type=entry_type,
            status_code=status_code,
            direction=fields[6].capitalize(),
            source=fields[7],
            duration_ms=safe_int(fields[8]),
            relative_duration_ms=relative,
            relative_path=to_posix(fields[-1]).strip("/"),
            map_file=map_file,
        )
