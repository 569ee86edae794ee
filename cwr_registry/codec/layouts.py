"""
Record layouts for CWR 2.0, 2.1 and 2.2.

Each layout lists its fields in column order after the record prefix.
Transmission-level records (HDR, GRH, GRT, TRL) carry only the 3-character
record type; every other record carries the 19-character transaction prefix
(record type, transaction sequence, record sequence).
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from cwr_registry.codec.fields import FieldKind as K
from cwr_registry.codec.fields import FieldSpec as F
from cwr_registry.core.vocabulary import CwrVersion

V21 = CwrVersion.V21
V22 = CwrVersion.V22

RECORD_TYPE_WIDTH = 3
SEQUENCE_WIDTH = 8
BODY_PREFIX_WIDTH = RECORD_TYPE_WIDTH + 2 * SEQUENCE_WIDTH


@dataclass(frozen=True)
class RecordLayout:
    """Column layout of one record type."""
    record_type: str
    fields: Tuple[F, ...]
    body: bool = True
    since: CwrVersion = CwrVersion.V20

    @property
    def prefix_width(self) -> int:
        return BODY_PREFIX_WIDTH if self.body else RECORD_TYPE_WIDTH

    @property
    def max_width(self) -> int:
        """Line width with every field of every version present."""
        return self.prefix_width + sum(spec.width for spec in self.fields)

    def fields_for(self, version: CwrVersion) -> Tuple[F, ...]:
        return tuple(spec for spec in self.fields if spec.since <= version)

    def width_for(self, version: CwrVersion) -> int:
        return self.prefix_width + sum(spec.width for spec in self.fields_for(version))

    def supports(self, version: CwrVersion) -> bool:
        return self.since <= version


HDR = RecordLayout("HDR", (
    F("sender_type", 2, required=True),
    F("sender_id", 9, K.PARTY, required=True),
    F("sender_name", 45, required=True),
    F("edi_version", 5, required=True),
    F("creation_date", 8, K.DATE, required=True),
    F("creation_time", 6, K.TIME, required=True),
    F("transmission_date", 8, K.DATE, required=True),
    F("character_set", 15, since=V21),
    F("cwr_version", 3, K.VERSION, since=V22),
    F("cwr_revision", 3, K.NUMERIC, since=V22),
    F("software_package", 30, since=V22),
    F("software_package_version", 30, since=V22),
), body=False)

GRH = RecordLayout("GRH", (
    F("transaction_type", 3, required=True),
    F("group_id", 5, K.NUMERIC, required=True),
    F("version_number", 5, K.GROUP_VERSION, required=True),
    F("batch_request", 10, K.NUMERIC),
    F("submission_distribution_type", 2),
), body=False)

GRT = RecordLayout("GRT", (
    F("group_id", 5, K.NUMERIC, required=True),
    F("transaction_count", 8, K.NUMERIC, required=True),
    F("record_count", 8, K.NUMERIC, required=True),
    F("currency_indicator", 3),
    F("total_monetary_value", 10, K.NUMERIC, blank=True),
), body=False)

TRL = RecordLayout("TRL", (
    F("group_count", 5, K.NUMERIC, required=True),
    F("transaction_count", 8, K.NUMERIC, required=True),
    F("record_count", 8, K.NUMERIC, required=True),
), body=False)


def _work_layout(record_type: str) -> RecordLayout:
    return RecordLayout(record_type, (
        F("work_title", 60, required=True),
        F("language_code", 2),
        F("submitter_work_id", 14, required=True),
        F("iswc", 11, K.ISWC),
        F("copyright_date", 8, K.DATE),
        F("copyright_number", 12),
        F("distribution_category", 3, required=True),
        F("duration", 6, K.DURATION),
        F("recorded_indicator", 1, K.FLAG, required=True),
        F("text_music_relationship", 3),
        F("composite_type", 3),
        F("version_type", 3, required=True),
        F("excerpt_type", 3),
        F("music_arrangement", 3),
        F("lyric_adaptation", 3),
        F("contact_name", 30),
        F("contact_id", 10),
        F("work_type", 2),
        F("grand_rights_indicator", 1, K.FLAG),
        F("composite_component_count", 3, K.NUMERIC),
        F("publication_date", 8, K.DATE),
        F("exceptional_clause", 1, K.FLAG),
        F("opus_number", 25),
        F("catalogue_number", 25),
        F("priority_flag", 1, K.FLAG, since=V21),
    ))


def _publisher_layout(record_type: str, controlled: bool) -> RecordLayout:
    return RecordLayout(record_type, (
        F("publisher_sequence_number", 2, K.NUMERIC, required=True),
        F("interested_party_number", 9, K.PARTY, required=controlled),
        F("publisher_name", 45, required=controlled),
        F("publisher_unknown_indicator", 1, K.FLAG),
        F("publisher_type", 2, required=controlled),
        F("tax_id", 9),
        F("publisher_ipi_name_number", 11, K.IPI_NAME),
        F("submitter_agreement_number", 14),
        F("pr_society", 3, K.SOCIETY),
        F("pr_ownership_share", 5, K.PERCENT),
        F("mr_society", 3, K.SOCIETY),
        F("mr_ownership_share", 5, K.PERCENT),
        F("sr_society", 3, K.SOCIETY),
        F("sr_ownership_share", 5, K.PERCENT),
        F("special_agreements_indicator", 1, K.FLAG),
        F("first_recording_refusal", 1, K.FLAG),
        F("filler", 1, K.FILLER),
        F("publisher_ipi_base_number", 13, K.IPI_BASE),
        F("isac", 14),
        F("society_agreement_number", 14),
        F("agreement_type", 2, since=V21),
        F("usa_license_indicator", 1, K.FLAG, since=V21),
    ))


def _publisher_territory_layout(record_type: str, since: CwrVersion = CwrVersion.V20) -> RecordLayout:
    return RecordLayout(record_type, (
        F("interested_party_number", 9, K.PARTY, required=True),
        F("constant", 6, K.FILLER),
        F("pr_collection_share", 5, K.PERCENT),
        F("mr_collection_share", 5, K.PERCENT),
        F("sr_collection_share", 5, K.PERCENT),
        F("inclusion_exclusion_indicator", 1, K.FLAG, required=True),
        F("tis_numeric_code", 4, K.NUMERIC, required=True),
        F("shares_change", 1, K.FLAG),
        F("sequence_number", 3, K.NUMERIC, since=V21),
    ), since=since)


def _writer_layout(record_type: str, controlled: bool) -> RecordLayout:
    return RecordLayout(record_type, (
        F("interested_party_number", 9, K.PARTY, required=controlled),
        F("writer_last_name", 45, required=controlled),
        F("writer_first_name", 30),
        F("writer_unknown_indicator", 1, K.FLAG),
        F("writer_designation_code", 2, required=controlled),
        F("tax_id", 9),
        F("writer_ipi_name_number", 11, K.IPI_NAME),
        F("pr_society", 3, K.SOCIETY),
        F("pr_ownership_share", 5, K.PERCENT),
        F("mr_society", 3, K.SOCIETY),
        F("mr_ownership_share", 5, K.PERCENT),
        F("sr_society", 3, K.SOCIETY),
        F("sr_ownership_share", 5, K.PERCENT),
        F("reversionary_indicator", 1, K.FLAG),
        F("first_recording_refusal", 1, K.FLAG),
        F("work_for_hire", 1, K.FLAG),
        F("filler", 1, K.FILLER),
        F("writer_ipi_base_number", 13, K.IPI_BASE),
        F("personal_number", 12),
        F("usa_license_indicator", 1, K.FLAG, since=V21),
    ))


def _writer_territory_layout(record_type: str, since: CwrVersion = CwrVersion.V20) -> RecordLayout:
    return RecordLayout(record_type, (
        F("interested_party_number", 9, K.PARTY, required=True),
        F("pr_collection_share", 5, K.PERCENT),
        F("mr_collection_share", 5, K.PERCENT),
        F("sr_collection_share", 5, K.PERCENT),
        F("inclusion_exclusion_indicator", 1, K.FLAG, required=True),
        F("tis_numeric_code", 4, K.NUMERIC, required=True),
        F("shares_change", 1, K.FLAG),
        F("sequence_number", 3, K.NUMERIC, since=V21),
    ), since=since)


def _title_reference_layout(record_type: str) -> RecordLayout:
    return RecordLayout(record_type, (
        F("title", 60, required=True),
        F("iswc", 11, K.ISWC),
        F("language_code", 2),
        F("writer_1_last_name", 45),
        F("writer_1_first_name", 30),
        F("source", 60),
        F("writer_1_ipi_name_number", 11, K.IPI_NAME),
        F("writer_1_ipi_base_number", 13, K.IPI_BASE),
        F("writer_2_last_name", 45),
        F("writer_2_first_name", 30),
        F("writer_2_ipi_name_number", 11, K.IPI_NAME),
        F("writer_2_ipi_base_number", 13, K.IPI_BASE),
        F("submitter_work_id", 14),
    ))


PWR = RecordLayout("PWR", (
    F("publisher_ip_number", 9, K.PARTY, required=True),
    F("publisher_name", 45, required=True),
    F("submitter_agreement_number", 14),
    F("society_agreement_number", 14),
    F("writer_ip_number", 9, K.PARTY, since=V21),
    F("publisher_sequence_number", 2, K.NUMERIC, since=V22, blank=True),
))

ALT = RecordLayout("ALT", (
    F("alternate_title", 60, required=True),
    F("title_type", 2, required=True),
    F("language_code", 2),
))

PER = RecordLayout("PER", (
    F("performing_artist_last_name", 45, required=True),
    F("performing_artist_first_name", 30),
    F("performing_artist_ipi_name_number", 11, K.IPI_NAME),
    F("performing_artist_ipi_base_number", 13, K.IPI_BASE),
))

COM = RecordLayout("COM", (
    F("title", 60, required=True),
    F("iswc", 11, K.ISWC),
    F("submitter_work_id", 14),
    F("duration", 6, K.DURATION),
    F("writer_1_last_name", 45, required=True),
    F("writer_1_first_name", 30),
    F("writer_1_ipi_name_number", 11, K.IPI_NAME),
    F("writer_2_last_name", 45),
    F("writer_2_first_name", 30),
    F("writer_2_ipi_name_number", 11, K.IPI_NAME),
    F("writer_1_ipi_base_number", 13, K.IPI_BASE),
    F("writer_2_ipi_base_number", 13, K.IPI_BASE),
))

REC = RecordLayout("REC", (
    F("first_release_date", 8, K.DATE),
    F("constant_1", 60, K.FILLER),
    F("first_release_duration", 6, K.DURATION),
    F("constant_2", 5, K.FILLER),
    F("first_album_title", 60),
    F("first_album_label", 60),
    F("first_release_catalog_number", 18),
    F("ean", 13),
    F("isrc", 12),
    F("recording_format", 1, K.FLAG),
    F("recording_technique", 1, K.FLAG),
    F("media_type", 3, since=V21),
    F("recording_title", 60, since=V22),
    F("version_title", 60, since=V22),
    F("display_artist", 60, since=V22),
    F("record_label", 60, since=V22),
    F("isrc_validity", 20, since=V22),
    F("submitter_recording_identifier", 14, since=V22),
))

ORN = RecordLayout("ORN", (
    F("intended_purpose", 3, required=True),
    F("production_title", 60),
    F("cd_identifier", 15),
    F("cut_number", 4, K.NUMERIC),
    F("library", 60, since=V21),
    F("bltvr", 1, K.FLAG, since=V21),
    F("filler", 25, K.FILLER, since=V21),
    F("production_number", 12, since=V21),
    F("episode_title", 60, since=V21),
    F("episode_number", 20, since=V21),
    F("year_of_production", 4, K.NUMERIC, since=V21, blank=True),
    F("avi_society_code", 3, K.SOCIETY, since=V21),
    F("audio_visual_number", 15, since=V21),
    F("v_isan", 12, since=V22),
    F("v_isan_episode", 4, since=V22),
    F("v_isan_check_digit_1", 1, since=V22),
    F("v_isan_version", 8, since=V22),
    F("v_isan_check_digit_2", 1, since=V22),
    F("eidr", 20, since=V22),
    F("eidr_check_digit", 1, since=V22),
))

INS = RecordLayout("INS", (
    F("number_of_voices", 3, K.NUMERIC),
    F("standard_instrumentation_type", 3),
    F("instrumentation_description", 50),
))

IND = RecordLayout("IND", (
    F("instrument_code", 3, required=True),
    F("number_of_players", 3, K.NUMERIC),
))

ARI = RecordLayout("ARI", (
    F("society_number", 3, K.NUMERIC, required=True),
    F("work_number", 14),
    F("type_of_right", 3, required=True),
    F("subject_code", 2),
    F("note", 160),
))

XRF = RecordLayout("XRF", (
    F("organisation_code", 3, K.NUMERIC, required=True),
    F("identifier", 14, required=True),
    F("identifier_type", 1, K.FLAG, required=True),
    F("validity", 1, K.FLAG, required=True),
), since=V22)

ACK = RecordLayout("ACK", (
    F("creation_date", 8, K.DATE, required=True),
    F("creation_time", 6, K.TIME, required=True),
    F("original_group_id", 5, K.NUMERIC, required=True),
    F("original_transaction_sequence", 8, K.NUMERIC, required=True),
    F("original_transaction_type", 3, required=True),
    F("creation_title", 60),
    F("submitter_creation_number", 20),
    F("recipient_creation_number", 20),
    F("processing_date", 8, K.DATE, required=True),
    F("transaction_status", 2, required=True),
))

MSG = RecordLayout("MSG", (
    F("message_type", 1, K.FLAG, required=True),
    F("original_record_sequence", 8, K.NUMERIC, required=True),
    F("original_record_type", 3, required=True),
    F("message_level", 1, K.FLAG, required=True),
    F("validation_number", 3, required=True),
    F("message_text", 150, required=True),
))


LAYOUTS: Dict[str, RecordLayout] = {
    layout.record_type: layout
    for layout in (
        HDR, GRH, GRT, TRL,
        _work_layout("NWR"), _work_layout("REV"), _work_layout("ISW"), _work_layout("EXC"),
        _publisher_layout("SPU", controlled=True),
        _publisher_layout("OPU", controlled=False),
        _publisher_territory_layout("SPT"),
        _publisher_territory_layout("OPT", since=V22),
        _writer_layout("SWR", controlled=True),
        _writer_layout("OWR", controlled=False),
        _writer_territory_layout("SWT"),
        _writer_territory_layout("OWT", since=V22),
        PWR, ALT,
        _title_reference_layout("EWT"),
        _title_reference_layout("VER"),
        PER, COM, REC, ORN, INS, IND, ARI, XRF, ACK, MSG,
    )
}


def get_layout(record_type: str) -> Optional[RecordLayout]:
    return LAYOUTS.get((record_type or "").upper())
