"""
LogStore Class - Handles file I/O operations

This module discovers and reads log artifacts under the configured log root.
"""

import glob
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from log_analyzer.config import AnalyzerConfig
from log_analyzer.models.data_models import DirectoryStatus, RawFile
from log_analyzer.utils.helpers import from_epoch, to_posix
from log_analyzer.utils.naming import MAP_PREFIX, RAW_SUFFIX, parse_raw_file_name

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class UnsafePathError(ValueError):
    """Raised when a requested path resolves outside the log root"""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogStore:
    """
    Read-only access to the log root.
    Responsibilities:
    - Discover main logs, map files and raw dumps within the retention window
    - Cap the number of main log files parsed per query
    - Read files, refusing paths that escape the log root
    - Provide directory diagnostics
    """

    def __init__(self, config: AnalyzerConfig, clock: Optional[Clock] = None):
        self.config = config
        self.root = os.path.abspath(config.log_directory)
        self.clock = clock or utc_now

    def exists(self) -> bool:
        return os.path.isdir(self.root)

    def main_log_files(self) -> List[str]:
        """Most recently modified main logs first, capped to max_log_files"""
        pattern = os.path.join(self.root, self.config.main_log_pattern)
        recent = self._recent(glob.glob(pattern))
        return [path for path, _ in recent[: self.config.max_log_files]]

    def map_files(self) -> List[str]:
        pattern = os.path.join(self._subfolder(self.config.map_subfolder), f"{MAP_PREFIX}*{RAW_SUFFIX}")
        return [path for path, _ in self._recent(glob.glob(pattern))]

    def raw_files(self) -> List[RawFile]:
        """Raw dumps under the inbound and outbound folders"""
        found: List[RawFile] = []
        for subfolder, direction in (
            (self.config.raw_inbound_subfolder, "Inbound"),
            (self.config.raw_outbound_subfolder, "Outbound"),
        ):
            pattern = os.path.join(self._subfolder(subfolder), f"*{RAW_SUFFIX}")
            for path, modified in self._recent(glob.glob(pattern)):
                found.append(
                    RawFile(
                        relative_path=self.relative(path),
                        direction=direction,
                        modified=modified,
                        name=parse_raw_file_name(path),
                    )
                )
        return found

    def relative(self, path: str) -> str:
        return to_posix(os.path.relpath(path, self.root))

    def read_text(self, path: str) -> Optional[str]:
        """Whole file as text; an unreadable file is logged and yields None"""
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as exc:
            logger.warning("Skipping unreadable file %s: %s", path, exc)
            return None

    def resolve(self, relative_path: str) -> str:
        """Absolute path for a root-relative path; escaping paths are refused"""
        cleaned = to_posix(relative_path or "").strip()
        if not cleaned or os.path.isabs(cleaned) or os.path.splitdrive(cleaned)[0]:
            raise UnsafePathError(f"Path must be relative to the log root: {relative_path!r}")

        root = os.path.realpath(self.root)
        candidate = os.path.realpath(os.path.join(root, cleaned))
        if os.path.commonpath([root, candidate]) != root:
            raise UnsafePathError(f"Path escapes the log root: {relative_path!r}")
        return candidate

    def read_file(self, relative_path: str) -> str:
        """Raw text of one file inside the log root"""
        full_path = self.resolve(relative_path)
        if not os.path.isfile(full_path):
            raise FileNotFoundError(relative_path)
        with open(full_path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()

    def stat(self) -> DirectoryStatus:
        """Directory diagnostics"""
        inbound = self._subfolder(self.config.raw_inbound_subfolder)
        outbound = self._subfolder(self.config.raw_outbound_subfolder)
        maps = self._subfolder(self.config.map_subfolder)

        log_files = sorted(
            os.path.basename(p)
            for p in glob.glob(os.path.join(self.root, self.config.main_log_pattern))
        )

        return DirectoryStatus(
            log_directory=self.root,
            directory_exists=self.exists(),
            log_files=log_files,
            raw_inbound_exists=os.path.isdir(inbound),
            raw_outbound_exists=os.path.isdir(outbound),
            maps_exists=os.path.isdir(maps),
            raw_inbound_files=len(glob.glob(os.path.join(inbound, f"*{RAW_SUFFIX}"))),
            raw_outbound_files=len(glob.glob(os.path.join(outbound, f"*{RAW_SUFFIX}"))),
            map_files=len(glob.glob(os.path.join(maps, f"{MAP_PREFIX}*{RAW_SUFFIX}"))),
        )

    def _subfolder(self, subfolder: str) -> str:
        return os.path.join(self.root, *to_posix(subfolder).strip("/").split("/"))

    def _recent(self, paths: List[str]) -> List[Tuple[str, datetime]]:
        """Files modified within the retention window, newest first"""
        cutoff = self.clock() - timedelta(days=self.config.retention_days)
        recent: List[Tuple[str, datetime]] = []
        for path in paths:
            try:
                if not os.path.isfile(path):
                    continue
                modified = from_epoch(os.path.getmtime(path))
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", path, exc)
                continue
            if modified >= cutoff:
                recent.append((path, modified))

        recent.sort(key=lambda item: (-item[1].timestamp(), item[0]))
        return recent
