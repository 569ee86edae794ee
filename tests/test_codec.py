"""Tests for the fixed-width record codec."""

from datetime import date, time
from decimal import Decimal

import pytest

from cwr_registry.codec.codec import RecordCodec
from cwr_registry.codec.fields import FieldKind, FieldSpec, decode_field, encode_field
from cwr_registry.codec.layouts import LAYOUTS, get_layout
from cwr_registry.codec.records import CwrRecord, UnparsedRecord
from cwr_registry.core.diagnostics import Severity
from cwr_registry.core.vocabulary import CwrVersion


def writer_record(**overrides):
    fields = {
        "interested_party_number": "W1",
        "writer_last_name": "SMITH",
        "writer_first_name": "JOHN",
        "writer_designation_code": "CA",
        "writer_ipi_name_number": "00123456790",
        "pr_society": 10,
        "pr_ownership_share": Decimal("50"),
        "mr_society": 99,
        "mr_ownership_share": 0,
        "sr_society": None,
        "sr_ownership_share": 0,
    }
    fields.update(overrides)
    return CwrRecord("SWR", fields, transaction_sequence=3, record_sequence=7)


@pytest.mark.parametrize("record_type,version,width", [
    ("HDR", "2.0", 86),
    ("HDR", "2.1", 101),
    ("HDR", "2.2", 167),
    ("GRH", "2.1", 28),
    ("NWR", "2.1", 260),
    ("SWR", "2.1", 180),
    ("SWR", "2.0", 179),
    ("SPU", "2.1", 183),
])
def test_line_width(record_type, version, width):
    """Line widths follow the version's field set."""
    assert RecordCodec(version).line_width(record_type) == width


def test_encode_writer_columns():
    """Values land in their columns with CWR padding rules."""
    result = RecordCodec("2.1").encode(writer_record())

    line = result.line
    assert result.diagnostics == []
    assert len(line) == 180
    assert line[0:19] == "SWR0000000300000007"
    assert line[19:28] == "W1       "
    assert line[28:73].rstrip() == "SMITH"
    assert line[73:103].rstrip() == "JOHN"
    assert line[104:106] == "CA"
    assert line[115:126] == "00123456790"
    assert line[126:129] == "010"
    assert line[129:134] == "05000"
    assert line[134:137] == "099"
    assert line[142:145] == "   "
    assert line[145:150] == "00000"


def test_encode_numeric_party_number_is_zero_filled():
    """Numeric party numbers are right-aligned with zeros."""
    line = RecordCodec("2.1").encode(writer_record(interested_party_number="12345")).line
    assert line[19:28] == "000012345"


def test_encode_missing_required_field():
    """A blank mandatory field is reported but the line is still produced."""
    result = RecordCodec("2.1").encode(writer_record(writer_last_name=""))

    assert result.ok
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.level == Severity.ERROR
    assert diagnostic.code == "MISSING_FIELD"
    assert diagnostic.message == "Writer Last Name is mandatory in record type SWR!"


def test_encode_invalid_ipi_is_blanked_with_warning():
    """An IPI failing its checksum is replaced with spaces."""
    result = RecordCodec("2.1").encode(writer_record(writer_ipi_name_number="00123456791"))

    assert result.line[115:126] == " " * 11
    assert [d.level for d in result.diagnostics] == [Severity.WARNING]


def test_encode_overflow_is_an_error():
    """Numbers too wide for their field become zeros and an error."""
    record = CwrRecord("GRT", {"group_id": 123456, "transaction_count": 1, "record_count": 3})
    result = RecordCodec("2.1").encode(record)

    assert result.line[3:8] == "00000"
    assert result.diagnostics[0].code == "INVALID_FIELD"
    assert result.diagnostics[0].level == Severity.ERROR


def test_encode_unknown_record_type():
    """Unknown record types produce no line."""
    result = RecordCodec("2.1").encode(CwrRecord("ZZZ", {}, transaction_sequence=1, record_sequence=2))

    assert result.line == ""
    assert not result.ok
    assert result.diagnostics[0].code == "UNSUPPORTED_RECORD"
    assert result.diagnostics[0].message == "(Txn 1, Seq 2): Unsupported record type 'ZZZ'."


def test_encode_record_not_in_version():
    """XRF only exists from CWR 2.2."""
    record = CwrRecord("XRF", {"organisation_code": 21, "identifier": "ABC", "identifier_type": "W", "validity": "Y"})

    assert RecordCodec("2.1").encode(record).line == ""
    assert not RecordCodec("2.1").supports("XRF")
    assert RecordCodec("2.2").supports("XRF")
    assert len(RecordCodec("2.2").encode(record).line) == 19 + 3 + 14 + 1 + 1


def test_encode_header_v22():
    """The 2.2 header carries the CWR version and software fields."""
    record = CwrRecord("HDR", {
        "sender_type": "PB",
        "sender_id": "00538783703",
        "sender_name": "ACME MUSIC",
        "edi_version": "01.10",
        "creation_date": date(2024, 3, 5),
        "creation_time": time(14, 30, 15),
        "transmission_date": date(2024, 3, 5),
        "cwr_version": CwrVersion.V22,
        "cwr_revision": 2,
        "software_package": "cwr-registry",
        "software_package_version": "1.0",
    })
    line = RecordCodec("2.2").encode(record).line

    assert line.startswith("HDRPB538783703ACME MUSIC")
    assert line[59:64] == "01.10"
    assert line[64:78] == "20240305143015"
    assert line[101:104] == "2.2"
    assert line[104:107] == "002"


def test_encode_group_header_version():
    """GRH carries the version as 02.10 or 02.20."""
    record = CwrRecord("GRH", {"transaction_type": "NWR", "group_id": 1, "version_number": CwrVersion.V21})
    assert RecordCodec("2.1").encode(record).line == "GRHNWR0000102.100000000000  "


def test_decode_writer():
    """Decoding restores typed values."""
    codec = RecordCodec("2.1")
    record = codec.decode(codec.encode(writer_record()).line + "\r\n").record

    assert record.record_type == "SWR"
    assert record.transaction_sequence == 3
    assert record.record_sequence == 7
    assert record["interested_party_number"] == "W1"
    assert record["writer_last_name"] == "SMITH"
    assert record["pr_society"] == 10
    assert record["sr_society"] is None
    assert record["pr_ownership_share"] == Decimal("50.00")
    assert record["writer_ipi_name_number"] == "00123456790"
    assert "filler" not in record.fields


def test_decode_short_line_is_padded():
    """Trailing fields missing from a short line decode as blanks."""
    result = RecordCodec("2.1").decode("ALT0000000100000002SECOND TITLE")

    assert result.diagnostics == []
    assert result.record["alternate_title"] == "SECOND TITLE"
    assert result.record["title_type"] == ""
    assert result.record.get("language_code", "EN") == ""


def test_decode_unknown_record():
    """Unknown record types come back unparsed, without diagnostics."""
    result = RecordCodec("2.1").decode("XYZ0000000000000001SOMETHING")

    assert isinstance(result.record, UnparsedRecord)
    assert result.record.record_type == "XYZ"
    assert result.diagnostics == []


def test_decode_bad_sequence_number():
    """A non-numeric sequence number is reported with the line number."""
    result = RecordCodec("2.1").decode("ALT00000A0100000002TITLE", line_number=12)

    assert result.diagnostics[0].code == "INVALID_FIELD"
    assert result.diagnostics[0].line == 12
    assert result.record.transaction_sequence == 0


def test_decode_reads_later_version_fields():
    """Fields from newer versions are read whatever the codec's version."""
    layout = get_layout("PWR")
    line = "PWR0000000000000003" + "P1".ljust(9) + "ACME MUSIC".ljust(45) + " " * 28 + "W1".ljust(9) + "01"
    assert len(line) == layout.max_width

    record = RecordCodec("2.0").decode(line).record
    assert record["writer_ip_number"] == "W1"
    assert record["publisher_sequence_number"] == 1


@pytest.mark.parametrize("kind,width,value,expected", [
    (FieldKind.PERCENT, 5, Decimal("33.335"), "03334"),
    (FieldKind.PERCENT, 5, 100, "10000"),
    (FieldKind.PERCENT, 5, None, "00000"),
    (FieldKind.DURATION, 6, 215, "000335"),
    (FieldKind.DURATION, 6, "01:02:03", "010203"),
    (FieldKind.DURATION, 6, None, "      "),
    (FieldKind.DATE, 8, "2024-03-05", "20240305"),
    (FieldKind.FLAG, 1, True, "Y"),
    (FieldKind.SOCIETY, 3, 0, "   "),
    (FieldKind.NUMERIC, 3, None, "000"),
    (FieldKind.ISWC, 11, "T-034.524.680-1", "T0345246801"),
])
def test_encode_field(kind, width, value, expected):
    """Field kinds render to their CWR text forms."""
    text, problem = encode_field(FieldSpec("field", width, kind), value)
    assert text == expected
    assert problem is None


def test_blank_numeric_field():
    """Numeric fields flagged blank render spaces when empty."""
    assert encode_field(FieldSpec("year", 4, FieldKind.NUMERIC, blank=True), None) == ("    ", None)


@pytest.mark.parametrize("kind,raw,expected", [
    (FieldKind.PERCENT, "     ", Decimal("0.00")),
    (FieldKind.PERCENT, "03334", Decimal("33.34")),
    (FieldKind.DATE, "00000000", None),
    (FieldKind.DATE, "20240305", date(2024, 3, 5)),
    (FieldKind.DURATION, "000335", 215),
    (FieldKind.SOCIETY, "099", 99),
    (FieldKind.SOCIETY, "000", None),
    (FieldKind.PARTY, "000012345", "12345"),
])
def test_decode_field(kind, raw, expected):
    """Raw slices decode into Python values."""
    value, problem = decode_field(FieldSpec("field", len(raw), kind), raw)
    assert value == expected
    assert problem is None


def test_decode_invalid_date_reports_problem():
    """Unparseable dates decode to None with a message."""
    value, problem = decode_field(FieldSpec("creation_date", 8, FieldKind.DATE), "20241341")
    assert value is None
    assert "Creation Date" in problem


def test_unknown_version_is_rejected():
    """Codecs exist only for CWR 2.0, 2.1 and 2.2."""
    with pytest.raises(ValueError):
        RecordCodec("3.0")


def sample_value(spec, version):
    """A value of the field's kind that fits its width."""
    samples = {
        FieldKind.TEXT: "ABCDEFGHIJKLMNOPQRSTUVWXYZ"[:spec.width],
        FieldKind.FLAG: "Y",
        FieldKind.NUMERIC: 7,
        FieldKind.PERCENT: Decimal("33.34"),
        FieldKind.DATE: date(2024, 3, 5),
        FieldKind.TIME: time(14, 30, 15),
        FieldKind.DURATION: 215,
        FieldKind.SOCIETY: 21,
        FieldKind.IPI_NAME: "00123456790",
        FieldKind.IPI_BASE: "I-000000229-7",
        FieldKind.ISWC: "T0345246801",
        FieldKind.PARTY: "W1",
        FieldKind.VERSION: version.value,
        FieldKind.GROUP_VERSION: version.group_version,
    }
    return samples[spec.kind]


@pytest.mark.parametrize("record_type,version", [
    (record_type, version)
    for record_type, layout in sorted(LAYOUTS.items())
    for version in CwrVersion
    if layout.supports(version)
])
def test_every_layout_round_trips(record_type, version):
    """Each record type decodes back to the values it was encoded from."""
    layout = LAYOUTS[record_type]
    fields = {
        spec.name: sample_value(spec, version)
        for spec in layout.fields_for(version)
        if spec.kind != FieldKind.FILLER
    }
    codec = RecordCodec(version)

    encoded = codec.encode(CwrRecord(record_type, fields, transaction_sequence=3, record_sequence=7))
    assert encoded.diagnostics == []
    assert len(encoded.line) == layout.width_for(version)

    decoded = codec.decode(encoded.line)
    assert decoded.diagnostics == []
    record = decoded.record
    assert record.record_type == record_type
    if layout.body:
        assert (record.transaction_sequence, record.record_sequence) == (3, 7)

    for spec in layout.fields:
        if spec.kind == FieldKind.FILLER:
            assert spec.name not in record.fields
        elif spec.since <= version:
            assert record[spec.name] == fields[spec.name], spec.name
        else:
            # Fields of later versions read as blanks
            assert record[spec.name] == decode_field(spec, " " * spec.width)[0], spec.name
