"""Catalog models for the CWR registry."""

from .base import CatalogModel
from .party import Shareholder, Share, TerritoryEntry
from .recording import Performer, Release, Track
from .transmission import GroupInfo, TransmissionHeader, TransmissionInfo, TransmissionTrailer
from .work import (
    Acknowledgement,
    AdditionalInfo,
    AlternateTitle,
    CrossReference,
    InstrumentDetail,
    InstrumentationSummary,
    SocietyMessage,
    TitleReference,
    Work,
    WorkOrigin,
)

__all__ = [
    "CatalogModel",
    "Shareholder",
    "Share",
    "TerritoryEntry",
    "Performer",
    "Release",
    "Track",
    "GroupInfo",
    "TransmissionHeader",
    "TransmissionInfo",
    "TransmissionTrailer",
    "Acknowledgement",
    "AdditionalInfo",
    "AlternateTitle",
    "CrossReference",
    "InstrumentDetail",
    "InstrumentationSummary",
    "SocietyMessage",
    "TitleReference",
    "Work",
    "WorkOrigin",
]
