"""
Fixed-width field specifications and their value conversions.

Every CWR field is described by a ``FieldSpec``: a name, a width, a kind
that drives conversion, whether it is mandatory, and the first CWR version
that carries it. Conversions never raise; problems are reported as messages
next to the converted value.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Tuple

from cwr_registry.core.vocabulary import CwrVersion
from cwr_registry.models.base import normalize_party_number
from cwr_registry.utils.validators import IPIBaseValidator, IPINameValidator, ISWCValidator


class FieldKind(str, Enum):
    """How a field's value is written and read."""
    TEXT = "text"
    FLAG = "flag"
    NUMERIC = "numeric"
    PERCENT = "percent"
    DATE = "date"
    TIME = "time"
    DURATION = "duration"
    SOCIETY = "society"
    IPI_NAME = "ipi_name"
    IPI_BASE = "ipi_base"
    ISWC = "iswc"
    PARTY = "party"
    VERSION = "version"
    GROUP_VERSION = "group_version"
    FILLER = "filler"


@dataclass(frozen=True)
class FieldSpec:
    """One fixed-width field in a record layout."""
    name: str
    width: int
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    since: CwrVersion = CwrVersion.V20
    blank: bool = False  # numeric fields written as spaces when empty

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title().replace("Ipi", "IPI").replace("Iswc", "ISWC")


Converted = Tuple[Any, Optional[str]]

PERCENT_SCALE = Decimal(100)
TWO_PLACES = Decimal("0.01")
_NEWLINES = re.compile(r"[\r\n]+")


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


# Encoding

def _pad_text(text: str, width: int) -> str:
    text = _NEWLINES.sub(" ", text)
    return text[:width].ljust(width)


def _encode_numeric(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return (" " * spec.width if spec.blank else "0" * spec.width), None
    try:
        number = int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return "0" * spec.width, f"{spec.label} must be numeric (got '{value}')!"
    maximum = 10 ** spec.width - 1
    if number < 0 or number > maximum:
        return "0" * spec.width, f"{spec.label} exceeds maximum allowable value ({maximum})!"
    return str(number).zfill(spec.width), None


def _encode_percent(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return "0" * spec.width, None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return "0" * spec.width, f"{spec.label} must be numeric (got '{value}')!"
    shifted = amount * PERCENT_SCALE
    if shifted > 10000:
        # Already carries the implied decimals
        shifted = amount
    number = int(shifted.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    maximum = 10 ** spec.width - 1
    if number < 0 or number > maximum:
        return "0" * spec.width, f"{spec.label} exceeds maximum allowable value ({maximum})!"
    return str(number).zfill(spec.width), None


def _encode_date(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%Y%m%d"), None
    text = str(value).strip()
    digits = text.replace("-", "")
    if len(digits) == 8 and digits.isdigit() and len(text) in (8, 10):
        return digits, None
    return " " * spec.width, f"{spec.label} is not in a valid format!"


def _split_clock(text: str) -> Optional[Tuple[int, int, int]]:
    digits = text.replace(":", "")
    if len(digits) != 6 or not digits.isdigit() or len(text) not in (6, 8):
        return None
    return int(digits[0:2]), int(digits[2:4]), int(digits[4:6])


def _encode_time(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return value.strftime("%H%M%S"), None
    parts = _split_clock(str(value).strip())
    if parts is None:
        return " " * spec.width, f"{spec.label} is not in a valid format!"
    return "%02d%02d%02d" % parts, None


def _encode_duration(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds())
    elif isinstance(value, time):
        seconds = value.hour * 3600 + value.minute * 60 + value.second
    elif isinstance(value, int):
        seconds = value
    else:
        parts = _split_clock(str(value).strip())
        if parts is None:
            return " " * spec.width, f"{spec.label} is not in a valid format!"
        seconds = parts[0] * 3600 + parts[1] * 60 + parts[2]
    hours, remainder = divmod(seconds, 3600)
    if seconds < 0 or hours > 99:
        return " " * spec.width, f"{spec.label} exceeds maximum allowable value (995959)!"
    return "%02d%02d%02d" % (hours, remainder // 60, remainder % 60), None


def _encode_society(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    try:
        code = int(str(value).strip())
    except ValueError:
        return " " * spec.width, f"{spec.label} must be a numeric society code (got '{value}')!"
    if code == 0:
        return " " * spec.width, None
    if code > 999:
        return " " * spec.width, f"{spec.label} exceeds maximum allowable value (999)!"
    return "%03d" % code, None


def _encode_ipi_name(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value) or IPINameValidator.normalize(value) == "":
        return " " * spec.width, None
    if not IPINameValidator.is_valid(value):
        return " " * spec.width, f"{spec.label} '{value}' failed the IPI checksum and was replaced with spaces."
    return IPINameValidator.normalize(value), None


def _encode_ipi_base(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if not IPIBaseValidator.is_valid(value):
        return " " * spec.width, f"{spec.label} '{value}' failed the IPI Base checksum and was replaced with spaces."
    return IPIBaseValidator.normalize(value), None


def _encode_iswc(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if not ISWCValidator.is_valid(value):
        return " " * spec.width, f"{spec.label} '{value}' is invalid and was replaced with spaces."
    return ISWCValidator.normalize(value), None


def _encode_party(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    text = str(value).strip().upper()
    if text.isdigit():
        if len(text.lstrip("0")) > spec.width:
            return " " * spec.width, f"{spec.label} exceeds maximum allowable value ({10 ** spec.width - 1})!"
        return text.lstrip("0").zfill(spec.width), None
    return _pad_text(text, spec.width), None


def _encode_flag(spec: FieldSpec, value: Any) -> Converted:
    if isinstance(value, bool):
        value = "Y" if value else "N"
    if is_empty(value):
        return " " * spec.width, None
    return _pad_text(str(value).strip().upper(), spec.width), None


def _encode_version(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    try:
        version = CwrVersion.parse(value)
    except ValueError:
        return " " * spec.width, f"{spec.label} '{value}' is not a supported CWR version!"
    text = version.group_version if spec.kind == FieldKind.GROUP_VERSION else version.value
    return text.ljust(spec.width), None


def _encode_text(spec: FieldSpec, value: Any) -> Converted:
    if is_empty(value):
        return " " * spec.width, None
    if isinstance(value, Enum):
        value = value.value
    return _pad_text(str(value), spec.width), None


_ENCODERS = {
    FieldKind.TEXT: _encode_text,
    FieldKind.FLAG: _encode_flag,
    FieldKind.NUMERIC: _encode_numeric,
    FieldKind.PERCENT: _encode_percent,
    FieldKind.DATE: _encode_date,
    FieldKind.TIME: _encode_time,
    FieldKind.DURATION: _encode_duration,
    FieldKind.SOCIETY: _encode_society,
    FieldKind.IPI_NAME: _encode_ipi_name,
    FieldKind.IPI_BASE: _encode_ipi_base,
    FieldKind.ISWC: _encode_iswc,
    FieldKind.PARTY: _encode_party,
    FieldKind.VERSION: _encode_version,
    FieldKind.GROUP_VERSION: _encode_version,
    FieldKind.FILLER: lambda spec, value: (" " * spec.width, None),
}


def encode_field(spec: FieldSpec, value: Any) -> Converted:
    """Render ``value`` into exactly ``spec.width`` characters."""
    return _ENCODERS[spec.kind](spec, value)


# Decoding

def _decode_numeric(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return None, None
    if not text.isdigit():
        return None, f"{spec.label} must be numeric (got '{text}')!"
    return int(text), None


def _decode_percent(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return Decimal("0.00"), None
    if not text.isdigit():
        return Decimal("0.00"), f"{spec.label} must be numeric (got '{text}')!"
    return (Decimal(int(text)) / PERCENT_SCALE).quantize(TWO_PLACES), None


def _decode_date(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text or text == "0" * len(text):
        return None, None
    try:
        return datetime.strptime(text, "%Y%m%d").date(), None
    except ValueError:
        return None, f"{spec.label} '{text}' is not a valid date!"


def _decode_time(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return None, None
    try:
        return datetime.strptime(text, "%H%M%S").time(), None
    except ValueError:
        return None, f"{spec.label} '{text}' is not a valid time!"


def _decode_duration(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return None, None
    if len(text) != 6 or not text.isdigit():
        return None, f"{spec.label} '{text}' is not a valid duration!"
    minutes, seconds = int(text[2:4]), int(text[4:6])
    if minutes > 59 or seconds > 59:
        return None, f"{spec.label} '{text}' is not a valid duration!"
    return int(text[0:2]) * 3600 + minutes * 60 + seconds, None


def _decode_society(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return None, None
    if not text.isdigit():
        return None, f"{spec.label} must be a numeric society code (got '{text}')!"
    return int(text) or None, None


def _decode_ipi_name(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text or not IPINameValidator.normalize(text):
        return None, None
    if not IPINameValidator.is_valid(text):
        return None, f"{spec.label} '{text}' failed the IPI checksum and was discarded."
    return IPINameValidator.normalize(text), None


def _decode_ipi_base(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return None, None
    if not IPIBaseValidator.is_valid(text):
        return None, f"{spec.label} '{text}' failed the IPI Base checksum and was discarded."
    return IPIBaseValidator.normalize(text), None


def _decode_iswc(spec: FieldSpec, raw: str) -> Converted:
    text = raw.strip()
    if not text:
        return "", None
    if not ISWCValidator.is_valid(text):
        return "", f"{spec.label} '{text}' is invalid and was discarded."
    return ISWCValidator.normalize(text), None


def _decode_party(spec: FieldSpec, raw: str) -> Converted:
    return normalize_party_number(raw), None


def _decode_text(spec: FieldSpec, raw: str) -> Converted:
    return raw.strip(), None


_DECODERS = {
    FieldKind.TEXT: _decode_text,
    FieldKind.FLAG: _decode_text,
    FieldKind.NUMERIC: _decode_numeric,
    FieldKind.PERCENT: _decode_percent,
    FieldKind.DATE: _decode_date,
    FieldKind.TIME: _decode_time,
    FieldKind.DURATION: _decode_duration,
    FieldKind.SOCIETY: _decode_society,
    FieldKind.IPI_NAME: _decode_ipi_name,
    FieldKind.IPI_BASE: _decode_ipi_base,
    FieldKind.ISWC: _decode_iswc,
    FieldKind.PARTY: _decode_party,
    FieldKind.VERSION: _decode_text,
    FieldKind.GROUP_VERSION: _decode_text,
}


def decode_field(spec: FieldSpec, raw: str) -> Converted:
    """Convert the raw slice of a line back into a Python value."""
    return _DECODERS[spec.kind](spec, raw)
