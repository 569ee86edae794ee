"""Loader for the bundled TIS territory table."""

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, FrozenSet, List

TIS_RESOURCE = "territories.json"


@lru_cache()
def load_tis_table() -> Dict[str, Any]:
    """Load ``data/territories.json`` once per process."""
    source = resources.files("cwr_registry").joinpath("data").joinpath(TIS_RESOURCE)
    with source.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def tis_tree() -> List[Dict[str, Any]]:
    return load_tis_table()["tree"]


def tis_table_version() -> str:
    return load_tis_table()["version"]


@lru_cache()
def iso_country_codes() -> FrozenSet[str]:
    """All two-letter leaf codes in the territory tree."""
    codes = set()
    pending = list(tis_tree())
    while pending:
        node = pending.pop()
        if len(node["alpha"]) == 2:
            codes.add(node["alpha"])
        pending.extend(node.get("children", []))
    return frozenset(codes)
