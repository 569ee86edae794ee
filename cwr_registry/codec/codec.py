"""
Fixed-width record codec.

``RecordCodec`` is parameterized by CWR version and is otherwise stateless:
``encode`` renders a ``CwrRecord`` into one line (without line terminator)
and ``decode`` turns one line back into a ``CwrRecord``. Neither raises for
bad data; problems travel back as diagnostics on the result.
"""

from typing import List, Optional, Union

from cwr_registry.codec.fields import FieldKind, FieldSpec, decode_field, encode_field, is_empty
from cwr_registry.codec.layouts import (
    RECORD_TYPE_WIDTH,
    SEQUENCE_WIDTH,
    get_layout,
)
from cwr_registry.codec.records import CwrRecord, DecodeResult, EncodeResult, UnparsedRecord
from cwr_registry.core.diagnostics import Diagnostic, Severity
from cwr_registry.core.vocabulary import CwrVersion

# Field kinds whose conversion problems are recoverable data-quality issues
_SOFT_KINDS = frozenset({FieldKind.IPI_NAME, FieldKind.IPI_BASE, FieldKind.ISWC})


class RecordCodec:
    """Encode and decode CWR records for one CWR version."""

    def __init__(self, version: Union[CwrVersion, str] = CwrVersion.V21):
        self.version = CwrVersion.parse(version)

    def __repr__(self) -> str:
        return f"RecordCodec(version={self.version.value!r})"

    def supports(self, record_type: str) -> bool:
        layout = get_layout(record_type)
        return layout is not None and layout.supports(self.version)

    def line_width(self, record_type: str) -> Optional[int]:
        """Encoded width of a record type for this codec's version."""
        layout = get_layout(record_type)
        return layout.width_for(self.version) if layout else None

    def encode(self, record: CwrRecord) -> EncodeResult:
        """
        Render a record as a fixed-width line.

        Args:
            record: record type, prefix numbers and named field values

        Returns:
            EncodeResult: the line (empty when the type is unknown or not
            available in this version) and any diagnostics
        """
        record_type = (record.record_type or "").upper()
        layout = get_layout(record_type)
        if layout is None:
            return EncodeResult("", [self._unsupported(record, f"Unsupported record type '{record_type}'.")])
        if not layout.supports(self.version):
            return EncodeResult("", [self._unsupported(
                record,
                f"Record type '{record_type}' is not available in CWR {self.version.value}.",
            )])

        diagnostics: List[Diagnostic] = []
        parts = [record_type]
        if layout.body:
            parts.append(self._sequence(record.transaction_sequence, "Transaction Sequence", record_type, diagnostics))
            parts.append(self._sequence(record.record_sequence, "Record Sequence", record_type, diagnostics))

        for spec in layout.fields_for(self.version):
            value = record.fields.get(spec.name)
            if spec.required and is_empty(value):
                diagnostics.append(Diagnostic(
                    Severity.ERROR,
                    f"{spec.label} is mandatory in record type {record_type}!",
                    code="MISSING_FIELD",
                    record_type=record_type,
                ))
            text, problem = encode_field(spec, value)
            if problem:
                diagnostics.append(self._field_problem(spec, problem, record_type))
            parts.append(text)

        return EncodeResult("".join(parts), diagnostics)

    def decode(self, line: str, line_number: Optional[int] = None) -> DecodeResult:
        """
        Parse one line.

        Short lines are padded to the layout's widest form, so senders that
        trim trailing spaces or omit later-version fields decode cleanly.

        Args:
            line: the raw line, with or without its terminator
            line_number: 1-indexed position in the file, for diagnostics

        Returns:
            DecodeResult: a ``CwrRecord``, or an ``UnparsedRecord`` for unknown types
        """
        line = line.rstrip("\r\n")
        record_type = line[:RECORD_TYPE_WIDTH].upper()
        layout = get_layout(record_type)
        if layout is None:
            return DecodeResult(UnparsedRecord(record_type, line))

        diagnostics: List[Diagnostic] = []
        padded = line.ljust(layout.max_width)
        record = CwrRecord(record_type)
        position = RECORD_TYPE_WIDTH

        if layout.body:
            record.transaction_sequence = self._read_sequence(
                padded[position:position + SEQUENCE_WIDTH], "Transaction Sequence", record_type, line_number, diagnostics
            )
            position += SEQUENCE_WIDTH
            record.record_sequence = self._read_sequence(
                padded[position:position + SEQUENCE_WIDTH], "Record Sequence", record_type, line_number, diagnostics
            )
            position += SEQUENCE_WIDTH

        for spec in layout.fields:
            raw = padded[position:position + spec.width]
            position += spec.width
            if spec.kind == FieldKind.FILLER:
                continue
            value, problem = decode_field(spec, raw)
            if problem:
                diagnostic = self._field_problem(spec, problem, record_type)
                diagnostic.line = line_number
                diagnostics.append(diagnostic)
            record.fields[spec.name] = value

        return DecodeResult(record, diagnostics)

    @staticmethod
    def _unsupported(record: CwrRecord, message: str) -> Diagnostic:
        return Diagnostic(
            Severity.ERROR,
            f"(Txn {record.transaction_sequence}, Seq {record.record_sequence}): {message}",
            code="UNSUPPORTED_RECORD",
            record_type=record.record_type,
        )

    @staticmethod
    def _field_problem(spec: FieldSpec, message: str, record_type: str) -> Diagnostic:
        level = Severity.WARNING if spec.kind in _SOFT_KINDS else Severity.ERROR
        return Diagnostic(level, message, code="INVALID_FIELD", record_type=record_type)

    @staticmethod
    def _sequence(value, label: str, record_type: str, diagnostics: List[Diagnostic]) -> str:
        spec = FieldSpec(label.lower().replace(" ", "_"), SEQUENCE_WIDTH, FieldKind.NUMERIC)
        text, problem = encode_field(spec, value or 0)
        if problem:
            diagnostics.append(Diagnostic(Severity.ERROR, problem, code="INVALID_FIELD", record_type=record_type))
        return text

    @staticmethod
    def _read_sequence(raw: str, label: str, record_type: str, line_number: Optional[int],
                       diagnostics: List[Diagnostic]) -> int:
        text = raw.strip()
        if text.isdigit():
            return int(text)
        diagnostics.append(Diagnostic(
            Severity.ERROR,
            f"{label} must be numeric (got '{text}')!",
            code="INVALID_FIELD",
            record_type=record_type,
            line=line_number,
        ))
        return 0
