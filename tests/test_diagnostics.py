"""Tests for the diagnostic log and file naming helpers."""

from datetime import date

import pytest
from structlog.testing import capture_logs

from cwr_registry.core.diagnostics import Diagnostic, DiagnosticLog, Severity
from cwr_registry.core.vocabulary import CwrVersion
from cwr_registry.utils.filenames import cwr_filename


def test_entries_keep_emission_order():
    log = DiagnosticLog()
    log.notice("first")
    log.error("second", code="E1", work_id="WK001")
    log.warning("third")

    assert log.messages == ["first", "second", "third"]
    assert [entry.level for entry in log] == [Severity.NOTICE, Severity.ERROR, Severity.WARNING]
    assert log.filter(Severity.ERROR)[0].work_id == "WK001"
    assert log.last.message == "third"
    assert str(log[1]) == "second"


def test_entries_are_mirrored_to_structlog():
    with capture_logs() as logs:
        DiagnosticLog(logger_name="parser").warning("Line 3: bad", code="INVALID_FIELD", line=3, work_id=None)

    assert logs == [{"event": "Line 3: bad", "code": "INVALID_FIELD", "line": 3, "log_level": "warning"}]


def test_extend_copies_context():
    log = DiagnosticLog()
    log.extend([Diagnostic(Severity.ERROR, "bad", code="X", record_type="SWR", line=9)])

    assert log[0].record_type == "SWR"
    assert log[0].line == 9
    assert DiagnosticLog().last is None


@pytest.mark.parametrize("receiver,sequence,version,expected", [
    (21, 1, "2.1", "CW240001ACM_021.V21"),
    (10, 42, CwrVersion.V22, "CW240042ACM_010.V22"),
    (0, 9999, "2.0", "CW249999ACM_000.V20"),
])
def test_cwr_filename(receiver, sequence, version, expected):
    assert cwr_filename("acm", receiver, sequence, version, today=date(2024, 3, 5)) == expected


def test_cwr_filename_rejects_large_sequence():
    with pytest.raises(ValueError):
        cwr_filename("ACM", 21, 10000, today=date(2024, 3, 5))
