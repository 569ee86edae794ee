"""Tests for TIS territory resolution."""

from decimal import Decimal

from cwr_registry.models import TerritoryEntry
from cwr_registry.services.territory import TerritoryResolver, get_territory_resolver

WORLD = 2136
AMERICA = 2101
EUROPE = 2120


def entry(tis_code, indicator="I", pr=0, mr=0, sr=0):
    return TerritoryEntry(
        tis_code=tis_code,
        indicator=indicator,
        pr_collection_share=pr,
        mr_collection_share=mr,
        sr_collection_share=sr,
    )


def test_lookup_country_and_aggregate():
    """Countries and aggregates are found by TIS code."""
    resolver = get_territory_resolver()

    usa = resolver.lookup(840)
    assert usa.alpha == "US"
    assert usa.is_country

    world = resolver.lookup(WORLD)
    assert world.alpha == "2WL"
    assert not world.is_country
    assert resolver.lookup(9999) is None
    assert resolver.lookup("not a code") is None


def test_expand_world_covers_every_country_once():
    """World expands to every leaf country without duplicates."""
    resolver = get_territory_resolver()
    countries = resolver.expand_iso(WORLD)

    assert "US" in countries
    assert "GB" in countries
    assert "JP" in countries
    assert len(countries) == len(set(countries))


def test_expand_country_returns_itself():
    """A country code expands to just that country."""
    assert get_territory_resolver().expand_iso(124) == ["CA"]
    assert get_territory_resolver().expand_iso(9999) == []


def test_code_for_iso():
    """ISO alpha-2 codes map back to TIS numeric codes."""
    resolver = get_territory_resolver()
    assert resolver.code_for_iso("us") == 840
    assert resolver.code_for_iso("DE") == 276
    assert resolver.code_for_iso("XX") is None


def test_collection_values_include_then_exclude():
    """Excludes remove countries an earlier include added."""
    resolver = get_territory_resolver()
    values = resolver.collection_values([
        entry(WORLD, "I", pr=50, mr=100, sr=100),
        entry(840, "E"),
    ])

    assert "US" not in values
    assert values["GB"].pr_collection_share == Decimal("50.00")
    assert values["GB"].source_tis_code == WORLD
    assert values["GB"].tis_code == 826


def test_collection_values_later_include_overwrites():
    """A later include replaces the shares of the countries it covers."""
    resolver = get_territory_resolver()
    values = resolver.collection_values([
        entry(WORLD, "I", pr=50),
        entry(EUROPE, "I", pr=25),
    ])

    assert values["FR"].pr_collection_share == Decimal("25.00")
    assert values["US"].pr_collection_share == Decimal("50.00")


def test_collection_values_include_after_exclude():
    """An include after an exclude of a wider territory adds only the countries it names."""
    resolver = get_territory_resolver()
    values = resolver.collection_values([
        entry(AMERICA, "E"),
        entry(124, "I", pr=50),
    ])

    assert list(values) == ["CA"]


def test_describe_annotates_entries():
    """describe() adds alpha code and name."""
    described = get_territory_resolver().describe([entry(826, "I", pr=50), entry(9999, "I", pr=50)])

    assert described[0]["alpha"] == "GB"
    assert described[0]["name"] == "UNITED KINGDOM"
    assert described[1]["alpha"] is None


def test_custom_tree():
    """A resolver can be built from a caller-supplied tree."""
    resolver = TerritoryResolver(tree=[
        {"tis": 1, "alpha": "2XX", "name": "TEST", "children": [
            {"tis": 2, "alpha": "AA", "name": "ALPHA"},
            {"tis": 3, "alpha": "BB", "name": "BETA"},
        ]},
    ])

    assert resolver.version == "custom"
    assert resolver.expand_iso(1) == ["AA", "BB"]
    assert not resolver.is_known(2136)
