"""
Configuration - frozen dataclass loaded from environment variables
"""

import os
from dataclasses import dataclass
from typing import Tuple

DEFAULT_NOISE_MARKERS: Tuple[str, ...] = (
    "loganalyzer",
    "log-analyzer",
    "log_analyzer",
    "favicon",
    "apple-touch-icon",
    ".well-known",
    "robots.txt",
)


@dataclass(frozen=True)
class AnalyzerConfig:
    log_directory: str = "logs"
    retention_days: int = 7
    max_log_files: int = 10
    max_traces: int = 100
    merge_window_seconds: float = 30.0
    main_log_pattern: str = "*.log"
    raw_inbound_subfolder: str = "Raw/Inbound"
    raw_outbound_subfolder: str = "Raw/Outbound"
    map_subfolder: str = "Raw/Maps"
    trace_header_name: str = "SimpleMDG-TraceLogID"
    noise_markers: Tuple[str, ...] = DEFAULT_NOISE_MARKERS
    log_timezone: str = "UTC"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000


def _parse_markers(value: str) -> Tuple[str, ...]:
    return tuple(m.strip().lower() for m in value.split(",") if m.strip())


def load_config() -> AnalyzerConfig:
    """Build AnalyzerConfig from LOG_ANALYZER_* environment variables"""
    env = os.environ.get
    markers = env("LOG_ANALYZER_NOISE_MARKERS")
    return AnalyzerConfig(
        log_directory=env("LOG_ANALYZER_LOG_DIR", AnalyzerConfig.log_directory),
        retention_days=int(env("LOG_ANALYZER_RETENTION_DAYS", AnalyzerConfig.retention_days)),
        max_log_files=int(env("LOG_ANALYZER_MAX_LOG_FILES", AnalyzerConfig.max_log_files)),
        max_traces=int(env("LOG_ANALYZER_MAX_TRACES", AnalyzerConfig.max_traces)),
        merge_window_seconds=float(
            env("LOG_ANALYZER_MERGE_WINDOW_SECONDS", AnalyzerConfig.merge_window_seconds)
        ),
        main_log_pattern=env("LOG_ANALYZER_MAIN_LOG_PATTERN", AnalyzerConfig.main_log_pattern),
        raw_inbound_subfolder=env(
            "LOG_ANALYZER_RAW_INBOUND_SUBFOLDER", AnalyzerConfig.raw_inbound_subfolder
        ),
        raw_outbound_subfolder=env(
            "LOG_ANALYZER_RAW_OUTBOUND_SUBFOLDER", AnalyzerConfig.raw_outbound_subfolder
        ),
        map_subfolder=env("LOG_ANALYZER_MAP_SUBFOLDER", AnalyzerConfig.map_subfolder),
        trace_header_name=env("LOG_ANALYZER_TRACE_HEADER", AnalyzerConfig.trace_header_name),
        noise_markers=_parse_markers(markers) if markers else DEFAULT_NOISE_MARKERS,
        log_timezone=env("LOG_ANALYZER_LOG_TIMEZONE", AnalyzerConfig.log_timezone),
        log_level=env("LOG_ANALYZER_LOG_LEVEL", AnalyzerConfig.log_level).upper(),
        host=env("LOG_ANALYZER_HOST", AnalyzerConfig.host),
        port=int(env("LOG_ANALYZER_PORT", AnalyzerConfig.port)),
    )
