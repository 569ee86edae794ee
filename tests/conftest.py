"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from cwr_registry.core.settings import Settings
from cwr_registry.services.catalog import Catalog
from cwr_registry.services.session import CatalogSession

SUBMITTER_IPI = "00538783703"
WRITER_IPI = "00123456790"
SECOND_WRITER_IPI = "00261547272"
PUBLISHER_IPI = "00330648087"
FIXED_NOW = datetime(2024, 3, 5, 14, 30, 15)


@pytest.fixture
def settings():
    """Settings for a publisher sending to ASCAP (society 21)."""
    return Settings(
        environment="test",
        submitter_code="ACM",
        submitter_ipi=SUBMITTER_IPI,
        receiver_society=21,
        cwr_version="2.1",
        software_package="cwr-registry",
        software_package_version="1.0",
    )


@pytest.fixture
def settings_v22(settings):
    """Same sender, writing CWR 2.2."""
    return settings.model_copy(update={"cwr_version": "2.2"})


@pytest.fixture
def catalog(settings):
    """An empty catalog."""
    return Catalog(settings=settings)


@pytest.fixture
def session(catalog):
    """A session over the empty catalog."""
    return CatalogSession(catalog)


@pytest.fixture
def submitter(catalog):
    """The sending publisher, registered as a controlled shareholder."""
    return catalog.add_shareholder(
        "P1",
        "ACME MUSIC",
        controlled=True,
        ipi_name_number=SUBMITTER_IPI,
        pr_society=21,
        mr_society=21,
    )


@pytest.fixture
def writer(catalog):
    """A controlled writer with a valid IPI Name Number."""
    return catalog.add_shareholder(
        "W1",
        "SMITH",
        "JOHN",
        controlled=True,
        ipi_name_number=WRITER_IPI,
        pr_society=10,
    )


@pytest.fixture
def minimal_work(catalog, submitter, writer):
    """A writer-only work: one controlled writer owning 100% worldwide."""
    work = catalog.register_work("WK001", "MY FIRST SONG")
    share = catalog.add_share(work, "W1", "CA", 100, 100, 100)
    catalog.add_territory(share, 2136, "I", 100, 100, 100)
    return work


@pytest.fixture
def published_work(catalog, submitter, writer):
    """A work split 50/50 between the writer and the submitter in chain 1."""
    work = catalog.register_work("WK002", "PUBLISHED SONG")
    publisher_share = catalog.add_share(work, "P1", "E", 50, 100, 100, link=1)
    catalog.add_territory(publisher_share, 2136, "I", 50, 100, 100)
    writer_share = catalog.add_share(work, "W1", "CA", 50, 0, 0, link=1)
    catalog.add_territory(writer_share, 2136, "I", 50, 0, 0)
    return work


@pytest.fixture
def fixed_now():
    """Clock for reproducible HDR timestamps."""
    return lambda: FIXED_NOW
