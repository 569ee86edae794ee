"""CWR registry: build, validate, write and read CISAC Common Works Registration files."""

from cwr_registry.codec.codec import RecordCodec
from cwr_registry.core.settings import Settings, get_settings
from cwr_registry.services.assembler import AssemblyResult, TransactionAssembler
from cwr_registry.services.catalog import Catalog, CatalogError
from cwr_registry.services.parser import ParseResult, TransactionParser
from cwr_registry.services.session import CatalogSession
from cwr_registry.services.territory import TerritoryResolver, get_territory_resolver

__version__ = "1.0.0"

__all__ = [
    "AssemblyResult",
    "Catalog",
    "CatalogError",
    "CatalogSession",
    "ParseResult",
    "RecordCodec",
    "Settings",
    "TerritoryResolver",
    "TransactionAssembler",
    "TransactionParser",
    "get_settings",
    "get_territory_resolver",
]
