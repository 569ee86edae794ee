"""Musical work registration and its work-level sub-records."""

from datetime import date, time
from typing import List, Optional

from pydantic import Field, field_validator

from cwr_registry.core.vocabulary import TransactionType
from cwr_registry.models.base import CatalogModel
from cwr_registry.models.party import Share


class AlternateTitle(CatalogModel):
    """ALT: an alternate title of the work."""

    title: str = Field(..., description="Title text")
    title_type: str = Field("AT", max_length=2)
    language_code: str = Field("", max_length=2)

    @field_validator("title_type", "language_code")
    @classmethod
    def upper(cls, v: str) -> str:
        return (v or "").upper()


class WorkOrigin(CatalogModel):
    """ORN: the production a work was written for."""

    intended_purpose: str = Field("", max_length=3)
    production_title: str = ""
    cd_identifier: str = ""
    cut_number: Optional[int] = None
    library: str = ""
    bltvr: str = ""
    production_number: str = ""
    episode_title: str = ""
    episode_number: str = ""
    year_of_production: Optional[int] = None
    avi_society_code: Optional[int] = None
    audio_visual_number: str = ""
    v_isan: str = ""
    v_isan_episode: str = ""
    v_isan_check_digit_1: str = ""
    v_isan_version: str = ""
    v_isan_check_digit_2: str = ""
    eidr: str = ""
    eidr_check_digit: str = ""

    @field_validator("intended_purpose")
    @classmethod
    def upper(cls, v: str) -> str:
        return (v or "").upper()


class TitleReference(CatalogModel):
    """COM, EWT or VER: a component, entire work or original work reference."""

    title: str = Field(..., description="Title text")
    iswc: str = ""
    language_code: str = ""
    source: str = ""
    submitter_work_id: str = ""
    duration: Optional[int] = Field(None, ge=0, description="Seconds")
    writer_1_last_name: str = ""
    writer_1_first_name: str = ""
    writer_1_ipi_name_number: Optional[str] = None
    writer_1_ipi_base_number: Optional[str] = None
    writer_2_last_name: str = ""
    writer_2_first_name: str = ""
    writer_2_ipi_name_number: Optional[str] = None
    writer_2_ipi_base_number: Optional[str] = None


class InstrumentationSummary(CatalogModel):
    """INS: summary of the instrumentation of a serious work."""

    number_of_voices: Optional[int] = Field(None, ge=0, le=999)
    standard_instrumentation_type: str = Field("", max_length=3)
    instrumentation_description: str = ""


class InstrumentDetail(CatalogModel):
    """IND: one instrument and its number of players."""

    instrument_code: str = Field(..., max_length=3)
    number_of_players: Optional[int] = Field(None, ge=0, le=999)


class AdditionalInfo(CatalogModel):
    """ARI: free-form note addressed to a society."""

    society_code: int = Field(..., ge=0, le=999)
    work_number: str = Field("", max_length=14)
    type_of_right: str = Field(..., max_length=3)
    subject_code: str = Field("", max_length=2)
    note: str = ""


class CrossReference(CatalogModel):
    """XRF: an identifier assigned to the work by another organisation."""

    organisation_code: int = Field(..., ge=0, le=999)
    identifier: str = Field(..., max_length=14)
    identifier_type: str = Field("W", max_length=1)
    validity: str = Field("Y", max_length=1)


class Acknowledgement(CatalogModel):
    """ACK: a society's response to a submitted transaction."""

    creation_date: Optional[date] = None
    creation_time: Optional[time] = None
    original_group_id: Optional[int] = None
    original_transaction_sequence: Optional[int] = None
    original_transaction_type: str = ""
    creation_title: str = ""
    submitter_creation_number: str = ""
    recipient_creation_number: str = ""
    processing_date: Optional[date] = None
    transaction_status: str = ""


class SocietyMessage(CatalogModel):
    """MSG: a validation message returned by a society."""

    message_type: str = ""
    original_record_sequence: Optional[int] = None
    record_type: str = ""
    message_level: str = ""
    validation_number: str = ""
    message_text: str = ""
    transaction_sequence: Optional[int] = None


class Work(CatalogModel):
    """
    A musical work registration.

    Shares, titles and identifiers hang off the work; shareholders,
    performers, tracks and releases live in catalog-wide registries and are
    referenced by key.
    """

    id: str = Field(..., max_length=14, description="Submitter work id")
    title: str = Field(..., description="Work title")
    sequence: int = Field(0, ge=0, description="1-indexed position in the catalog")
    language_code: str = Field("", max_length=2)
    iswc: str = Field("", description="ISWC, stored without separators")
    copyright_date: Optional[date] = None
    copyright_number: str = ""
    distribution_category: str = Field("", max_length=3)
    duration: Optional[int] = Field(None, ge=0, description="Duration in seconds")
    recorded_indicator: str = Field("", max_length=1)
    text_music_relationship: str = ""
    composite_type: str = ""
    version_type: str = Field("", max_length=3)
    excerpt_type: str = ""
    music_arrangement: str = ""
    lyric_adaptation: str = ""
    work_type: str = Field("", max_length=2, description="CWR work type, e.g. FM for film/TV")
    grand_rights_indicator: str = Field("", max_length=1)
    composite_component_count: int = Field(0, ge=0)
    publication_date: Optional[date] = None
    exceptional_clause: str = ""
    opus_number: str = ""
    catalogue_number: str = ""
    priority_flag: str = ""
    transaction_type: int = Field(0, ge=0, description="TransactionType bitmask")

    shares: List[Share] = Field(default_factory=list)
    alternate_titles: List[AlternateTitle] = Field(default_factory=list)
    origins: List[WorkOrigin] = Field(default_factory=list)
    component: Optional[TitleReference] = None
    entire_work: Optional[TitleReference] = None
    original_work: Optional[TitleReference] = None
    instrumentation: List[InstrumentationSummary] = Field(default_factory=list)
    instrument_details: List[InstrumentDetail] = Field(default_factory=list)
    additional_info: List[AdditionalInfo] = Field(default_factory=list)
    cross_references: List[CrossReference] = Field(default_factory=list)
    performer_refs: List[int] = Field(default_factory=list)
    isrcs: List[str] = Field(default_factory=list)
    acknowledgement: Optional[Acknowledgement] = None
    messages: List[SocietyMessage] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v) -> str:
        text = str(v).strip() if v is not None else ""
        if not text:
            raise ValueError("Work id is required")
        return text

    @field_validator("iswc", mode="before")
    @classmethod
    def strip_iswc(cls, v) -> str:
        if not v:
            return ""
        return str(v).replace("-", "").replace(".", "").replace(" ", "").upper()

    @field_validator(
        "language_code", "distribution_category", "recorded_indicator", "text_music_relationship",
        "version_type", "work_type", "grand_rights_indicator", "composite_type", "excerpt_type",
        "music_arrangement", "lyric_adaptation",
    )
    @classmethod
    def upper_codes(cls, v: str) -> str:
        return (v or "").upper()

    @property
    def transaction_flags(self) -> TransactionType:
        return TransactionType(self.transaction_type)

    @property
    def work_origin(self) -> Optional[WorkOrigin]:
        return self.origins[0] if self.origins else None
