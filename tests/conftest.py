import os
import time
from pathlib import Path
from typing import Optional

import pytest

from log_analyzer.config import AnalyzerConfig


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    root = tmp_path / "logs"
    root.mkdir()
    return root


@pytest.fixture
def config(log_root: Path) -> AnalyzerConfig:
    return AnalyzerConfig(log_directory=str(log_root))


@pytest.fixture
def write_file(log_root: Path):
    """Write a file under the log root; optional age in days sets its mtime."""

    def _write(relative: str, content: str, age_days: Optional[float] = None) -> Path:
        path = log_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if age_days is not None:
            stamp = time.time() - age_days * 86400
            os.utime(path, (stamp, stamp))
        return path

    return _write


@pytest.fixture
def map_row():
    """Build one 11-field (or 10-field) map row."""

    def _row(
        timestamp: str,
        step: int,
        kind: str,
        path: str,
        duration: str = "0",
        relative: Optional[str] = "0",
        status: str = "N/A",
        direction: str = "inbound",
        method_key: str = "v1_BusinessWorkspace_Search",
        controller_action: str = "BusinessWorkspace_Search",
        source: str = "Postman",
    ) -> str:
        fields = [
            timestamp,
            str(step),
            controller_action,
            method_key,
            kind,
            status,
            direction,
            source,
            duration,
        ]
        if relative is not None:
            fields.append(relative)
        fields.append(path)
        return ",".join(fields)

    return _row
