"""Ordered diagnostic log shared by the codec, validation, assembler and parser."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional

from cwr_registry.core.logging import get_logger


class Severity(str, Enum):
    """Diagnostic severity."""
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    level: Severity
    message: str
    code: Optional[str] = None
    work_id: Optional[str] = None
    record_type: Optional[str] = None
    line: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class DiagnosticLog:
    """
    Diagnostics in emission order.

    Every appended entry is mirrored to structlog so that a configured
    pipeline sees the same stream the caller inspects.
    """
    entries: List[Diagnostic] = field(default_factory=list)
    logger_name: str = "diagnostics"

    def __post_init__(self):
        self._logger = get_logger(self.logger_name)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Diagnostic:
        return self.entries[index]

    def add(
        self,
        level: Severity,
        message: str,
        code: Optional[str] = None,
        **context
    ) -> Diagnostic:
        """Append a diagnostic and log it."""
        diagnostic = Diagnostic(level=level, message=message, code=code, **context)
        self.entries.append(diagnostic)

        log_method = {
            Severity.NOTICE: self._logger.info,
            Severity.WARNING: self._logger.warning,
            Severity.ERROR: self._logger.error,
        }[level]
        log_method(
            message,
            code=code,
            **{key: value for key, value in context.items() if value is not None}
        )
        return diagnostic

    def notice(self, message: str, code: Optional[str] = None, **context) -> Diagnostic:
        return self.add(Severity.NOTICE, message, code, **context)

    def warning(self, message: str, code: Optional[str] = None, **context) -> Diagnostic:
        return self.add(Severity.WARNING, message, code, **context)

    def error(self, message: str, code: Optional[str] = None, **context) -> Diagnostic:
        return self.add(Severity.ERROR, message, code, **context)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Append already-built diagnostics (e.g. from a codec result)."""
        for diagnostic in diagnostics:
            self.add(
                diagnostic.level,
                diagnostic.message,
                diagnostic.code,
                work_id=diagnostic.work_id,
                record_type=diagnostic.record_type,
                line=diagnostic.line,
            )

    def filter(self, level: Severity) -> List[Diagnostic]:
        return [entry for entry in self.entries if entry.level == level]

    @property
    def messages(self) -> List[str]:
        return [entry.message for entry in self.entries]

    @property
    def last(self) -> Optional[Diagnostic]:
        return self.entries[-1] if self.entries else None
