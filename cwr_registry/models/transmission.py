"""File-level metadata captured from HDR, GRH, GRT and TRL records."""

from datetime import date, time
from typing import Dict, Optional

from pydantic import Field

from cwr_registry.models.base import CatalogModel


class TransmissionHeader(CatalogModel):
    """HDR: who sent the file and when."""

    sender_type: str = ""
    sender_id: str = ""
    sender_name: str = ""
    edi_version: str = ""
    creation_date: Optional[date] = None
    creation_time: Optional[time] = None
    transmission_date: Optional[date] = None
    character_set: str = ""
    cwr_version: Optional[str] = None
    cwr_revision: Optional[int] = None
    software_package: str = ""
    software_package_version: str = ""


class GroupInfo(CatalogModel):
    """GRH/GRT: one transaction group."""

    group_id: int = Field(..., ge=0)
    transaction_type: str = ""
    version: str = ""
    batch_request: Optional[int] = None
    transaction_count: Optional[int] = None
    record_count: Optional[int] = None
    currency_indicator: str = ""
    total_monetary_value: Optional[int] = None


class TransmissionTrailer(CatalogModel):
    """TRL: file totals."""

    group_count: Optional[int] = None
    transaction_count: Optional[int] = None
    record_count: Optional[int] = None


class TransmissionInfo(CatalogModel):
    """Header, groups and trailer of a parsed transmission."""

    header: Optional[TransmissionHeader] = None
    groups: Dict[int, GroupInfo] = Field(default_factory=dict)
    trailer: Optional[TransmissionTrailer] = None
