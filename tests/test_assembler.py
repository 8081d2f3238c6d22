"""Tests for services/assembler.py"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from log_analyzer.models.data_models import EntryType, MapEntry
from log_analyzer.services.assembler import TraceAssembler

TRACE_ID = "fa6e0000-0000-0000-0000-000000000000"
OTHER_ID = "0b1c0000-0000-0000-0000-000000000001"
T0 = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def make_entry(step, kind=EntryType.REQUEST, duration=0, status=None, path=None, trace_id=TRACE_ID,
               map_file=None, method_key="v1_BusinessWorkspace_Search", recorded=None):
    marker = "request" if kind is EntryType.REQUEST else "response"
    return MapEntry(
        timestamp=T0 + timedelta(milliseconds=duration),
        step_number=step,
        controller_action="BusinessWorkspace_Search",
        method_key=method_key,
        type=kind,
        status_code=status,
        direction="Inbound",
        source="Postman",
        duration_ms=duration,
        relative_duration_ms=recorded,
        relative_path=path or f"Raw/Inbound/2025010110000{step}_{marker}_{method_key}_{trace_id}.txt",
        map_file=map_file,
    )


class TestRelativeDurations:
    @pytest.mark.parametrize(
        "cumulative, expected",
        [
            ([0, 120, 350], [120, 120, 230]),
            ([50, 120, 350], [50, 70, 230]),
            ([0], [0]),
            ([0, 0, 200], [200, 0, 200]),
            ([100, None, 300], [100, None, 300]),
            ([], []),
        ],
    )
    def test_cumulative_to_relative(self, cumulative, expected):
        assert TraceAssembler.relative_durations(cumulative) == expected


class TestGroup:
    def test_hyphen_and_underscore_variants_share_a_trace(self):
        a = make_entry(1)
        b = make_entry(2, EntryType.RESPONSE, 120, trace_id=TRACE_ID.replace("-", "_"))
        groups = TraceAssembler().group([b, a])
        assert list(groups) == [TRACE_ID]
        assert [e.step_number for e in groups[TRACE_ID]] == [1, 2]

    def test_map_file_fallback(self):
        entry = make_entry(1, path="Raw/Inbound/unnamed.txt", map_file=f"Raw/Maps/Map_{OTHER_ID}_001.txt")
        assert list(TraceAssembler().group([entry])) == [OTHER_ID]

    def test_rows_without_trace_id_are_skipped(self):
        entry = make_entry(1, path="Raw/Inbound/unnamed.txt")
        assert TraceAssembler().group([entry]) == {}


class TestAssemble:
    def test_steps_in_order_with_relative_durations(self):
        rows = [
            make_entry(3, EntryType.RESPONSE, 350, status=200),
            make_entry(1, EntryType.REQUEST, 0),
            make_entry(2, EntryType.REQUEST, 120),
        ]
        steps = TraceAssembler().assemble(rows)
        assert [s.step_number for s in steps] == [1, 2, 3]
        assert [s.relative_duration_ms for s in steps] == [120, 120, 230]
        assert all(s.trace_id == TRACE_ID for s in steps)

    def test_recorded_relative_duration_is_cross_checked(self, caplog):
        rows = [
            make_entry(1, EntryType.REQUEST, 0, recorded=0),
            make_entry(2, EntryType.RESPONSE, 350, status=200, recorded=350),
        ]
        with caplog.at_level(logging.DEBUG, logger="log_analyzer.services.assembler"):
            steps = TraceAssembler().assemble(rows)

        assert [s.relative_duration_ms for s in steps] == [350, 350]
        assert "step 1: map file records 0 ms, computed 350 ms" in caplog.text
        assert "step 2" not in caplog.text

    def test_independent_traces(self):
        rows = [make_entry(1, duration=40), make_entry(1, duration=80, trace_id=OTHER_ID)]
        steps = TraceAssembler().assemble(rows)
        assert {s.trace_id for s in steps} == {TRACE_ID, OTHER_ID}
        assert [s.relative_duration_ms for s in steps] == [40, 80]


class TestToLogEntry:
    def test_request_step(self):
        entry = TraceAssembler.to_log_entry(TRACE_ID, make_entry(1), 0)
        assert entry.type is EntryType.REQUEST
        assert entry.level == "INFO"
        assert entry.message == "Inbound Request: v1_BusinessWorkspace_Search"
        assert entry.request_file.endswith(f"_{TRACE_ID}.txt")
        assert entry.response_file is None
        assert entry.operation == "BusinessWorkspace"
        assert entry.controller_action == "BusinessWorkspace_Search"

    def test_failed_response(self):
        entry = TraceAssembler.to_log_entry(TRACE_ID, make_entry(2, EntryType.RESPONSE, 90, status=500), 90)
        assert entry.level == "ERROR"
        assert entry.message.endswith("(500)")
        assert entry.status_code == 500
        assert entry.response_file is not None
        assert entry.request_file is None

    def test_business_object_from_file_name(self):
        path = f"Raw/Outbound/20250101100000_request_v1_MasterData_BUS1001006_403669_{TRACE_ID}.txt"
        entry = TraceAssembler.to_log_entry(TRACE_ID, make_entry(1, path=path), 0)
        assert entry.bo_type == "BUS1001006"
        assert entry.bo_id == "403669"
        assert entry.operation == "MasterData"
