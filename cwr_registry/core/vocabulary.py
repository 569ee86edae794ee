"""
CWR lookup tables.

Static, versioned vocabularies used by the codec, the validation rules and
the assembler. Tables are immutable and loaded once at import time.
"""

from enum import Enum, IntFlag
from functools import total_ordering
from typing import Dict, FrozenSet, Tuple

TABLES_VERSION = "2.2r2"


@total_ordering
class CwrVersion(Enum):
    """Supported CWR versions."""
    V20 = "2.0"
    V21 = "2.1"
    V22 = "2.2"

    @classmethod
    def parse(cls, value) -> "CwrVersion":
        """Accept ``CwrVersion``, ``"2.1"``, ``2.1`` or ``"02.10"``."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        if len(text) == 5 and text[2] == ".":
            # Group header form "02.10"
            text = f"{int(text[:2])}.{text[3]}"
        for version in cls:
            if version.value == text:
                return version
        raise ValueError(f"Unsupported CWR version: {value!r}")

    @property
    def number(self) -> Tuple[int, int]:
        major, minor = self.value.split(".")
        return int(major), int(minor)

    @property
    def group_version(self) -> str:
        """Version string used in the GRH record."""
        return "02.20" if self is CwrVersion.V22 else "02.10"

    def __lt__(self, other):
        if not isinstance(other, CwrVersion):
            return NotImplemented
        return self.number < other.number


class TransactionType(IntFlag):
    """Transaction-type bitmask carried by each work."""
    NONE = 0
    NWR = 1
    REV = 2
    ISW = 4
    EXC = 8
    ACK = 16


# Group emission order
GROUP_ORDER: Tuple[TransactionType, ...] = (
    TransactionType.NWR,
    TransactionType.REV,
    TransactionType.ISW,
    TransactionType.EXC,
)

TRANSACTION_HEADER_TYPES: FrozenSet[str] = frozenset({"NWR", "REV", "ISW", "EXC"})


class RoleClass(str, Enum):
    """Share role families."""
    PUBLISHER = "publisher"
    SUB_PUBLISHER = "sub_publisher"
    WRITER = "writer"
    ARRANGER = "arranger"
    INCOME_PARTICIPANT = "income_participant"


PUBLISHER_ROLES: FrozenSet[str] = frozenset({"E", "AM", "AQ", "ES"})
SUB_PUBLISHER_ROLES: FrozenSet[str] = frozenset({"SE"})
WRITER_ROLES: FrozenSet[str] = frozenset({"A", "C", "CA"})
ARRANGER_ROLES: FrozenSet[str] = frozenset({"AR", "SA", "AD", "SR", "TR"})
INCOME_PARTICIPANT_ROLES: FrozenSet[str] = frozenset({"PA"})

ROLE_CLASSES: Dict[str, RoleClass] = {
    **{role: RoleClass.PUBLISHER for role in PUBLISHER_ROLES},
    **{role: RoleClass.SUB_PUBLISHER for role in SUB_PUBLISHER_ROLES},
    **{role: RoleClass.WRITER for role in WRITER_ROLES},
    **{role: RoleClass.ARRANGER for role in ARRANGER_ROLES},
    **{role: RoleClass.INCOME_PARTICIPANT for role in INCOME_PARTICIPANT_ROLES},
}

# Lower sorts first within a chain of title
ROLE_PRIORITY: Dict[str, int] = {
    "E": 0,
    "AM": 1,
    "AQ": 2,
    "ES": 3,
    "SE": 4,
    "PA": 5,
    "A": 6,
    "C": 6,
    "CA": 6,
    "AR": 7,
    "AD": 7,
    "SA": 7,
    "SR": 7,
    "TR": 7,
}

TITLE_TYPES: FrozenSet[str] = frozenset(
    {"AT", "TE", "FT", "IT", "OT", "TT", "PT", "RT", "ET", "OL", "AL"}
)
# Title types that only make sense with a language code
LANGUAGE_TITLE_TYPES: FrozenSet[str] = frozenset({"OL", "AL"})

TEXT_MUSIC_RELATIONSHIPS: FrozenSet[str] = frozenset({"MUS", "MTX", "TXT", "MTN", ""})

INTENDED_PURPOSES: FrozenSet[str] = frozenset(
    {"COM", "FIL", "GEN", "LIB", "MUL", "RAD", "TEL", "THR", "VID"}
)

FILM_TV_WORK_TYPE = "FM"

TYPES_OF_RIGHT: FrozenSet[str] = frozenset({"MEC", "PER", "SYN", "ALL"})

INCLUSION_INDICATORS: FrozenSet[str] = frozenset({"I", "E"})

XREF_IDENTIFIER_TYPES: FrozenSet[str] = frozenset({"W", "R", "P", "V"})
XREF_VALIDITY: FrozenSet[str] = frozenset({"Y", "U", "N"})

# Defaults applied by work validation
DEFAULT_RECORDED_INDICATOR = "U"
DEFAULT_VERSION_TYPE = "ORI"
DEFAULT_DISTRIBUTION_CATEGORY = "POP"
DEFAULT_GRAND_RIGHTS_INDICATOR = "N"
ORIGINAL_VERSION_TYPE = "ORI"

# Society code used when a party declares no affiliation
NO_SOCIETY = 99

# Interested-party numbers below this are synthetic (temporary)
TEMPORARY_PARTY_CEILING = 100000000

# ISRC registrant prefixes that are valid without being ISO 3166 countries
ISRC_EXTRA_COUNTRY_CODES: FrozenSet[str] = frozenset(
    {"TC", "CP", "DG", "ZZ", "CS", "YU", "QM", "QZ", "UK"}
)
