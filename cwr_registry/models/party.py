"""Interested parties, their shares in works and territorial collection entries."""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from cwr_registry.core.vocabulary import (
    INCLUSION_INDICATORS,
    NO_SOCIETY,
    ROLE_CLASSES,
    RoleClass,
)
from cwr_registry.models.base import CatalogModel, normalize_party_number, to_percentage


class TerritoryEntry(CatalogModel):
    """Collection shares for one TIS territory (country or aggregate)."""

    tis_code: int = Field(..., ge=0, le=9999, description="TIS numeric code")
    indicator: str = Field("I", description="I = include, E = exclude")
    pr_collection_share: Decimal = Field(Decimal("0.00"), ge=0, description="Performing rights collection %")
    mr_collection_share: Decimal = Field(Decimal("0.00"), ge=0, description="Mechanical rights collection %")
    sr_collection_share: Decimal = Field(Decimal("0.00"), ge=0, description="Synchronisation rights collection %")
    shares_change: str = Field("", max_length=1)

    @field_validator("indicator")
    @classmethod
    def validate_indicator(cls, v: str) -> str:
        v = (v or "I").upper()
        if v not in INCLUSION_INDICATORS:
            raise ValueError(f"Indicator must be one of: {sorted(INCLUSION_INDICATORS)}")
        return v

    @field_validator("pr_collection_share", "mr_collection_share", "sr_collection_share", mode="before")
    @classmethod
    def coerce_share(cls, v) -> Decimal:
        return to_percentage(v)

    @property
    def is_include(self) -> bool:
        return self.indicator == "I"

    @property
    def total_collection(self) -> Decimal:
        return self.pr_collection_share + self.mr_collection_share + self.sr_collection_share


class Shareholder(CatalogModel):
    """A writer or publisher identity, shared by every share citing its number."""

    interested_party_number: str = Field(..., description="Submitter-assigned party number")
    last_name: str = Field(..., description="Surname, or the full name of a publisher")
    first_name: str = Field("", description="Writer first name; blank for publishers")
    controlled: bool = Field(False, description="Administered by the submitter")
    ipi_name_number: Optional[str] = Field(None, description="IPI Name Number (11 digits)")
    ipi_base_number: Optional[str] = Field(None, description="IPI Base Number (I-#########-#)")
    pr_society: Optional[int] = Field(NO_SOCIETY, description="Performing rights society")
    mr_society: Optional[int] = Field(NO_SOCIETY, description="Mechanical rights society")
    sr_society: Optional[int] = Field(NO_SOCIETY, description="Synchronisation rights society")
    usa_license_indicator: str = Field("", max_length=1)
    tax_id: str = Field("", max_length=9)
    personal_number: str = Field("", max_length=12)
    unknown_indicator: str = Field("", max_length=1, description="Y when the party is unidentified")
    temporary: bool = Field(False, description="Party number was synthesized for an unidentified writer")

    @field_validator("interested_party_number", mode="before")
    @classmethod
    def validate_party_number(cls, v) -> str:
        number = normalize_party_number(v)
        if not number:
            raise ValueError("Interested party number is required")
        return number

    @property
    def is_temporary(self) -> bool:
        """Synthetic numbers assigned to unidentified writers."""
        return self.temporary

    @property
    def is_publisher(self) -> bool:
        return not self.first_name

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Share(CatalogModel):
    """One ownership stake of one shareholder in one work."""

    interested_party_number: str = Field(..., description="Key into the shareholder registry")
    role: str = Field(..., description="Publisher type or writer designation code")
    pr_ownership_share: Decimal = Field(Decimal("0.00"), ge=0)
    mr_ownership_share: Decimal = Field(Decimal("0.00"), ge=0)
    sr_ownership_share: Decimal = Field(Decimal("0.00"), ge=0)
    link: int = Field(0, ge=0, description="Chain-of-title (publisher sequence) number")
    co_publisher_link: Optional[int] = Field(None, description="Additional chain this publisher co-publishes")
    special_agreements_indicator: str = Field("", max_length=1)
    first_recording_refusal: str = Field("", max_length=1)
    reversionary_indicator: str = Field("", max_length=1)
    work_for_hire: str = Field("", max_length=1)
    submitter_agreement_number: str = Field("", max_length=14)
    society_agreement_number: str = Field("", max_length=14)
    agreement_type: str = Field("", max_length=2)
    isac: str = Field("", max_length=14, description="International Standard Agreement Code")
    territories: List[TerritoryEntry] = Field(default_factory=list)

    @field_validator("interested_party_number", mode="before")
    @classmethod
    def validate_party_number(cls, v) -> str:
        number = normalize_party_number(v)
        if not number:
            raise ValueError("Interested party number is required")
        return number

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        return (v or "").upper()

    @field_validator("pr_ownership_share", "mr_ownership_share", "sr_ownership_share", mode="before")
    @classmethod
    def coerce_share(cls, v) -> Decimal:
        return to_percentage(v)

    @property
    def role_class(self) -> Optional[RoleClass]:
        return ROLE_CLASSES.get(self.role)
