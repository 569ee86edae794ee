"""
Territory resolution over the CISAC TIS hierarchy.

The resolver holds an immutable tree of TIS nodes (World > continents >
countries). It answers exact lookups, expands aggregate codes into leaf
countries and folds a share's include/exclude entries into a per-country
collection map.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cwr_registry.core.tis_data import tis_tree, tis_table_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerritoryNode:
    """One TIS territory: a country (2-char ISO alpha) or an aggregate."""
    tis_code: int
    alpha: str
    name: str
    children: Tuple["TerritoryNode", ...] = ()

    @property
    def is_country(self) -> bool:
        return len(self.alpha) == 2

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerritoryNode":
        return cls(
            tis_code=int(data["tis"]),
            alpha=data["alpha"],
            name=data["name"],
            children=tuple(cls.from_dict(child) for child in data.get("children", [])),
        )


@dataclass
class CountryShare:
    """Collection shares that apply to one country after folding."""
    iso: str
    tis_code: int
    source_tis_code: int
    pr_collection_share: Decimal
    mr_collection_share: Decimal
    sr_collection_share: Decimal
    shares_change: str = ""


class TerritoryResolver:
    """Read-only resolver; safe to share between catalogs."""

    def __init__(self, tree: Optional[List[Dict[str, Any]]] = None, version: Optional[str] = None):
        source = tree if tree is not None else tis_tree()
        self.roots: Tuple[TerritoryNode, ...] = tuple(TerritoryNode.from_dict(node) for node in source)
        self.version = version or (tis_table_version() if tree is None else "custom")
        self._expansions: Dict[int, Tuple[TerritoryNode, ...]] = {}

    def lookup(self, tis_code: int) -> Optional[TerritoryNode]:
        """Depth-first search for a TIS code; the first match wins."""
        try:
            code = int(tis_code)
        except (TypeError, ValueError):
            return None
        return self._find(self.roots, code)

    def _find(self, nodes: Iterable[TerritoryNode], code: int) -> Optional[TerritoryNode]:
        for node in nodes:
            if node.tis_code == code:
                return node
            if node.children:
                found = self._find(node.children, code)
                if found is not None:
                    return found
        return None

    def expand(self, tis_code: int) -> Tuple[TerritoryNode, ...]:
        """
        Expand a TIS code into its leaf countries.

        A country returns itself; an aggregate returns every descendant
        country once, in tree order. Unknown codes expand to nothing.
        """
        node = self.lookup(tis_code)
        if node is None:
            return ()

        if node.tis_code not in self._expansions:
            countries: List[TerritoryNode] = []
            seen = set()
            pending = [node]
            while pending:
                current = pending.pop(0)
                if current.is_country and current.alpha not in seen:
                    seen.add(current.alpha)
                    countries.append(current)
                pending[0:0] = list(current.children)
            self._expansions[node.tis_code] = tuple(countries)

        return self._expansions[node.tis_code]

    def expand_iso(self, tis_code: int) -> List[str]:
        return [node.alpha for node in self.expand(tis_code)]

    def is_known(self, tis_code: int) -> bool:
        return self.lookup(tis_code) is not None

    def code_for_iso(self, iso: str) -> Optional[int]:
        """TIS numeric code of a country given its ISO alpha-2 code."""
        iso = (iso or "").upper()
        for root in self.roots:
            for country in self.expand(root.tis_code):
                if country.alpha == iso:
                    return country.tis_code
        return None

    def collection_values(self, entries: Iterable[Any]) -> Dict[str, CountryShare]:
        """
        Fold territory entries, in order, into a country -> shares map.

        Include entries add or overwrite every country they expand to;
        exclude entries remove them regardless of earlier inclusions.

        Args:
            entries: objects exposing ``tis_code``, ``indicator`` and the
                three ``*_collection_share`` attributes

        Returns:
            Dict[str, CountryShare]: keyed by ISO alpha-2 code, in insertion order
        """
        selection: Dict[str, CountryShare] = {}
        for entry in entries:
            countries = self.expand(entry.tis_code)
            if not countries:
                logger.debug(f"TIS code {entry.tis_code} is not in the territory table")
            for country in countries:
                if entry.indicator == "I":
                    selection[country.alpha] = CountryShare(
                        iso=country.alpha,
                        tis_code=country.tis_code,
                        source_tis_code=int(entry.tis_code),
                        pr_collection_share=Decimal(entry.pr_collection_share),
                        mr_collection_share=Decimal(entry.mr_collection_share),
                        sr_collection_share=Decimal(entry.sr_collection_share),
                        shares_change=entry.shares_change or "",
                    )
                elif entry.indicator == "E":
                    selection.pop(country.alpha, None)
        return selection

    def describe(self, entries: Iterable[Any]) -> List[Dict[str, Any]]:
        """Territory entries annotated with their alpha code and name."""
        described = []
        for entry in entries:
            node = self.lookup(entry.tis_code)
            described.append({
                "indicator": entry.indicator,
                "tis_code": int(entry.tis_code),
                "alpha": node.alpha if node else None,
                "name": node.name if node else None,
                "pr_collection_share": entry.pr_collection_share,
                "mr_collection_share": entry.mr_collection_share,
                "sr_collection_share": entry.sr_collection_share,
            })
        return described


@lru_cache()
def get_territory_resolver() -> TerritoryResolver:
    """Shared resolver built from the bundled TIS table."""
    return TerritoryResolver()
