"""Cursor-style builder over a ``Catalog``.

A session remembers the work and share most recently added or selected so
that callers (and the parser) can feed records in file order without
passing handles around.
"""

from typing import Any, Optional

from cwr_registry.models import CrossReference, Share, TerritoryEntry, Work
from cwr_registry.services.catalog import Catalog, CatalogError


class CatalogSession:
    """Builder that applies catalog calls to the current work and share."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self.current_work: Optional[Work] = None
        self.current_share: Optional[Share] = None
        self.current_cross_reference: Optional[CrossReference] = None

    @property
    def work(self) -> Work:
        if self.current_work is None:
            raise CatalogError("No current work; register or select a work first")
        return self.current_work

    @property
    def share(self) -> Share:
        if self.current_share is None:
            raise CatalogError("No current share; add a share first")
        return self.current_share

    def register_work(self, work_id: str, title: str = "", **attributes) -> Work:
        """Create or update a work and make it current."""
        self.current_work = self.catalog.register_work(work_id, title, **attributes)
        self.current_share = None
        self.current_cross_reference = None
        return self.current_work

    def select_work(self, work_id: str) -> Work:
        self.current_work = self.catalog.get_work(work_id)
        self.current_share = None
        self.current_cross_reference = None
        return self.current_work

    def add_shareholder(self, interested_party_number: str, last_name: str, **attributes):
        return self.catalog.add_shareholder(interested_party_number, last_name, **attributes)

    def add_share(self, interested_party_number: str, role: str, pr_ownership_share: Any = 0,
                  mr_ownership_share: Any = 0, sr_ownership_share: Any = 0, **attributes) -> Share:
        """Append a share to the current work and make it current."""
        self.current_share = self.catalog.add_share(
            self.work, interested_party_number, role,
            pr_ownership_share, mr_ownership_share, sr_ownership_share, **attributes
        )
        return self.current_share

    def add_territory(self, tis_code: int, indicator: str = "I", pr_collection_share: Any = 0,
                      mr_collection_share: Any = 0, sr_collection_share: Any = 0,
                      shares_change: str = "") -> TerritoryEntry:
        return self.catalog.add_territory(
            self.share, tis_code, indicator, pr_collection_share, mr_collection_share, sr_collection_share,
            shares_change, work_id=self.work.id,
        )

    def add_alternate_title(self, title: str, title_type: str = "AT", language_code: str = ""):
        return self.catalog.add_alternate_title(self.work, title, title_type, language_code)

    def add_origin(self, intended_purpose: str, **fields):
        return self.catalog.add_origin(self.work, intended_purpose, **fields)

    def add_instrumentation(self, **fields):
        return self.catalog.add_instrumentation(self.work, **fields)

    def add_instrument_detail(self, instrument_code: str, number_of_players: Optional[int] = None):
        return self.catalog.add_instrument_detail(self.work, instrument_code, number_of_players)

    def set_title_reference(self, record_type: str, title: str, **fields):
        return self.catalog.set_title_reference(self.work, record_type, title, **fields)

    def add_performer(self, last_name: str, first_name: str = "", **identifiers) -> int:
        return self.catalog.add_performer(last_name, first_name, work=self.work, **identifiers)

    def add_isrc(self, isrc: str) -> bool:
        return self.catalog.add_isrc(self.work, isrc)

    def add_additional_info(self, society_code: Any, type_of_right: str, **fields):
        return self.catalog.add_additional_info(self.work, society_code, type_of_right, **fields)

    def add_cross_reference(self, organisation_code: int, identifier: str, **fields) -> CrossReference:
        self.current_cross_reference = self.catalog.add_cross_reference(
            self.work, organisation_code, identifier, **fields
        )
        return self.current_cross_reference

    def set_acknowledgement(self, **fields):
        return self.catalog.set_acknowledgement(self.work, **fields)

    def add_message(self, **fields):
        return self.catalog.add_message(self.work, **fields)
