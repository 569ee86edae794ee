"""Recording, release and performer registries."""

from datetime import date
from typing import List, Optional

from pydantic import Field, field_validator

from cwr_registry.models.base import CatalogModel


class Track(CatalogModel):
    """A recording keyed by ISRC; linked to a work by work id or ISWC."""

    isrc: str = Field(..., description="ISRC without separators")
    title: str = ""
    version_title: str = ""
    display_artist: str = ""
    label: str = ""
    track_id: str = Field("", description="Submitter recording identifier")
    work_id: Optional[str] = None
    iswc: str = ""
    duration: Optional[int] = Field(None, ge=0, description="Duration in seconds")
    recording_format: str = ""
    recording_technique: str = ""
    isrc_validity: str = ""
    performer_ref: Optional[int] = None
    releases: List[str] = Field(default_factory=list, description="UPC/EAN codes")

    @field_validator("isrc", mode="before")
    @classmethod
    def normalize_isrc(cls, v) -> str:
        text = str(v or "").upper().replace("ISRC", "")
        return "".join(ch for ch in text if ch not in " -")


class Release(CatalogModel):
    """A product (album, single) keyed by UPC/EAN."""

    upc: str = Field(..., description="UPC or EAN digits")
    title: str = ""
    label: str = ""
    catalog_number: str = ""
    release_date: Optional[date] = None
    media_type: str = ""
    tracks: List[str] = Field(default_factory=list, description="ISRCs on this release")

    @field_validator("upc", mode="before")
    @classmethod
    def digits_only(cls, v) -> str:
        return "".join(ch for ch in str(v or "") if ch.isdigit())


class Performer(CatalogModel):
    """A performing artist; deduplicated catalog-wide by IPI or name."""

    last_name: str
    first_name: str = ""
    ipi_name_number: Optional[str] = None
    ipi_base_number: Optional[str] = None

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
