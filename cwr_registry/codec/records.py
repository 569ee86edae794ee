"""Typed records exchanged with the codec."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from cwr_registry.core.diagnostics import Diagnostic


@dataclass
class CwrRecord:
    """A decoded (or to-be-encoded) CWR record: its type, prefix numbers and named fields."""
    record_type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    transaction_sequence: int = 0
    record_sequence: int = 0

    def __getitem__(self, name: str) -> Any:
        return self.fields.get(name)

    def get(self, name: str, default: Any = None) -> Any:
        value = self.fields.get(name)
        return default if value is None else value


@dataclass
class UnparsedRecord:
    """A line whose record type has no layout."""
    record_type: str
    line: str


@dataclass
class EncodeResult:
    line: str
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.line)


@dataclass
class DecodeResult:
    record: Optional[Union[CwrRecord, UnparsedRecord]]
    diagnostics: List[Diagnostic] = field(default_factory=list)
