"""
Identity hooks for parties the catalog cannot identify on its own.

The parser asks a resolver for a party number when a decoded writer has a
blank interested-party number, and the share rules ask whether an IPI Name
Number is known. Deployments plug in a lookup against their own registry.
"""

from typing import Iterable, Optional, Protocol, runtime_checkable

from cwr_registry.utils.validators import IPINameValidator


@runtime_checkable
class PartyIdentityResolver(Protocol):
    """External identity lookups used while parsing and validating."""

    def resolve_unknown_writer(self, last_name: str, first_name: str, society: Optional[int]) -> Optional[str]:
        """Return an existing party number for an unidentified writer, or None."""
        ...

    def ipi_exists(self, ipi_name_number: str) -> bool:
        """Whether the IPI Name Number is known to the registry."""
        ...


class DefaultIdentityResolver:
    """
    Resolver with no external registry.

    Unknown writers are never matched, so the catalog falls back to a name
    lookup and then to a temporary number. An IPI is accepted when it passes
    the checksum, or when it is in ``known_ipis`` if that set was supplied.
    """

    def __init__(self, known_ipis: Optional[Iterable[str]] = None):
        self.known_ipis = (
            {IPINameValidator.normalize(ipi) for ipi in known_ipis} if known_ipis is not None else None
        )

    def resolve_unknown_writer(self, last_name: str, first_name: str, society: Optional[int]) -> Optional[str]:
        return None

    def ipi_exists(self, ipi_name_number: str) -> bool:
        if not IPINameValidator.is_valid(ipi_name_number):
            return False
        if self.known_ipis is None:
            return True
        return IPINameValidator.normalize(ipi_name_number) in self.known_ipis
