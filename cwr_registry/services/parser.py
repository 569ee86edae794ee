"""Transaction parser: reads a CWR transmission into a catalog.

One forward pass over the lines; each record is decoded by the codec and
applied to the catalog through a ``CatalogSession`` that tracks the current
work and share. Problems are recorded and parsing continues.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from cwr_registry.codec.codec import RecordCodec
from cwr_registry.codec.records import CwrRecord, UnparsedRecord
from cwr_registry.core.diagnostics import DiagnosticLog
from cwr_registry.core.settings import Settings
from cwr_registry.core.vocabulary import CwrVersion, RoleClass, TransactionType
from cwr_registry.models import GroupInfo, TransmissionHeader, TransmissionTrailer
from cwr_registry.services.catalog import Catalog, CatalogError
from cwr_registry.services.identity import PartyIdentityResolver
from cwr_registry.services.session import CatalogSession

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

WORK_FIELDS = (
    "language_code", "iswc", "copyright_date", "copyright_number", "distribution_category", "duration",
    "recorded_indicator", "text_music_relationship", "composite_type", "version_type", "excerpt_type",
    "music_arrangement", "lyric_adaptation", "work_type", "grand_rights_indicator", "publication_date",
    "exceptional_clause", "opus_number", "catalogue_number", "priority_flag",
)


@dataclass
class ParseResult:
    """The populated catalog, the work ids seen (in file order) and the diagnostics of the pass."""
    catalog: Catalog
    work_ids: List[str] = field(default_factory=list)
    diagnostics: DiagnosticLog = field(default_factory=DiagnosticLog)

    @property
    def transmission(self):
        return self.catalog.transmission


class TransactionParser:
    """Reads CWR text into a ``Catalog``."""

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        settings: Optional[Settings] = None,
        identity: Optional[PartyIdentityResolver] = None,
    ):
        """
        Initialize the parser.

        Args:
            catalog: catalog to merge into; a new one is created when omitted
            settings: configuration; the default CWR version applies until
                the file declares its own
            identity: resolver for writers without a party number
        """
        self.catalog = catalog or Catalog(settings=settings, identity=identity)
        self.settings = settings or self.catalog.settings
        self.version = CwrVersion.parse(self.settings.cwr_version)
        self._declared_version = False
        self._handlers: Dict[str, Callable[[CwrRecord], None]] = {
            "HDR": self._header,
            "GRH": self._group_header,
            "GRT": self._group_trailer,
            "TRL": self._trailer,
            "NWR": self._transaction_header,
            "REV": self._transaction_header,
            "ISW": self._transaction_header,
            "EXC": self._transaction_header,
            "ACK": self._acknowledgement,
            "MSG": self._message,
            "SPU": self._publisher,
            "OPU": self._publisher,
            "SWR": self._writer,
            "OWR": self._writer,
            "SPT": self._territory,
            "OPT": self._territory,
            "SWT": self._territory,
            "OWT": self._territory,
            "PWR": self._publisher_for_writer,
            "ALT": self._alternate_title,
            "EWT": self._title_reference,
            "VER": self._title_reference,
            "COM": self._title_reference,
            "PER": self._performer,
            "REC": self._recording,
            "ORN": self._origin,
            "INS": self._instrumentation,
            "IND": self._instrument_detail,
            "ARI": self._additional_info,
            "XRF": self._cross_reference,
        }

    def parse(self, text: str) -> ParseResult:
        """
        Parse a transmission.

        Args:
            text: CWR file contents; CRLF, CR and LF line endings are accepted

        Returns:
            ParseResult: the catalog, work ids in order of first appearance
            and the diagnostics of this pass
        """
        self.diagnostics = DiagnosticLog(logger_name="parser")
        self.catalog.diagnostics = self.diagnostics
        self.session = CatalogSession(self.catalog)
        self.work_ids: List[str] = []
        codec = RecordCodec(self.version)

        for number, line in enumerate(_LINE_BREAK.split(text or ""), start=1):
            if not line.strip():
                continue
            result = codec.decode(line, line_number=number)
            record = result.record
            if isinstance(record, UnparsedRecord):
                self.diagnostics.warning(
                    f"Line {number}: unknown record type '{record.record_type}' -- skipped.",
                    code="UNKNOWN_RECORD",
                    record_type=record.record_type,
                    line=number,
                )
                continue

            current = self.session.current_work
            for diagnostic in result.diagnostics:
                diagnostic.work_id = current.id if current else None
            self.diagnostics.extend(result.diagnostics)

            self._line = number
            try:
                self._handlers[record.record_type](record)
            except (CatalogError, ModelValidationError) as e:
                self.diagnostics.error(
                    f"Line {number}: {record.record_type} record not applied: {e}",
                    code="RECORD_NOT_APPLIED",
                    record_type=record.record_type,
                    line=number,
                )
            if record.record_type == "TRL":
                break

        logger.info(f"Parsed {len(self.work_ids)} works (CWR {self.version.value})")
        return ParseResult(self.catalog, self.work_ids, self.diagnostics)

    def _note(self, message: str, record: CwrRecord, code: str) -> None:
        current = self.session.current_work
        self.diagnostics.warning(
            f"Line {self._line}: {message}",
            code=code,
            record_type=record.record_type,
            line=self._line,
            work_id=current.id if current else None,
        )

    # Transmission records

    def _header(self, record: CwrRecord) -> None:
        header = TransmissionHeader(
            sender_type=record.get("sender_type", ""),
            sender_id=record.get("sender_id", ""),
            sender_name=record.get("sender_name", ""),
            edi_version=record.get("edi_version", ""),
            creation_date=record["creation_date"],
            creation_time=record["creation_time"],
            transmission_date=record["transmission_date"],
            character_set=record.get("character_set", ""),
            cwr_version=record["cwr_version"] or None,
            cwr_revision=record["cwr_revision"],
            software_package=record.get("software_package", ""),
            software_package_version=record.get("software_package_version", ""),
        )
        self.catalog.transmission.header = header
        if header.cwr_version:
            self._set_version(header.cwr_version, record)

    def _set_version(self, value: str, record: CwrRecord) -> None:
        try:
            self.version = CwrVersion.parse(value)
            self._declared_version = True
        except ValueError:
            self._note(f"CWR version '{value}' is not supported; keeping {self.version.value}.",
                       record, "UNSUPPORTED_VERSION")

    def _group_header(self, record: CwrRecord) -> None:
        group_id = record.get("group_id", 0)
        self.catalog.transmission.groups[group_id] = GroupInfo(
            group_id=group_id,
            transaction_type=record.get("transaction_type", ""),
            version=record.get("version_number", ""),
            batch_request=record["batch_request"],
        )
        if not self._declared_version and record["version_number"]:
            self._set_version(record["version_number"], record)

    def _group_trailer(self, record: CwrRecord) -> None:
        group_id = record.get("group_id", 0)
        group = self.catalog.transmission.groups.get(group_id)
        if group is None:
            group = GroupInfo(group_id=group_id)
            self.catalog.transmission.groups[group_id] = group
        group.transaction_count = record["transaction_count"]
        group.record_count = record["record_count"]
        group.currency_indicator = record.get("currency_indicator", "")
        group.total_monetary_value = record["total_monetary_value"]

    def _trailer(self, record: CwrRecord) -> None:
        self.catalog.transmission.trailer = TransmissionTrailer(
            group_count=record["group_count"],
            transaction_count=record["transaction_count"],
            record_count=record["record_count"],
        )

    # Transactions

    def _flags_for(self, work_id: str, flag: TransactionType) -> int:
        if work_id in self.catalog:
            return int(self.catalog.get_work(work_id).transaction_type | flag)
        return int(flag)

    def _seen(self, work_id: str) -> None:
        if work_id not in self.work_ids:
            self.work_ids.append(work_id)

    def _transaction_header(self, record: CwrRecord) -> None:
        work_id = record.get("submitter_work_id", "")
        attributes = {name: record[name] for name in WORK_FIELDS if record[name] is not None}
        attributes["composite_component_count"] = record.get("composite_component_count", 0)
        attributes["transaction_type"] = self._flags_for(work_id, TransactionType[record.record_type])
        work = self.session.register_work(work_id, record.get("work_title", ""), **attributes)
        self._seen(work.id)

    def _acknowledgement(self, record: CwrRecord) -> None:
        work_id = record.get("submitter_creation_number", "")
        if not work_id:
            self._note("ACK without a submitter creation number -- skipped.", record, "ACK_WITHOUT_WORK")
            return
        work = self.session.register_work(
            work_id,
            record.get("creation_title", ""),
            transaction_type=self._flags_for(work_id, TransactionType.ACK),
        )
        self.session.set_acknowledgement(**{
            name: value for name, value in record.fields.items() if value is not None
        })
        self._seen(work.id)

    def _message(self, record: CwrRecord) -> None:
        self.session.add_message(
            message_type=record.get("message_type", ""),
            original_record_sequence=record["original_record_sequence"],
            record_type=record.get("original_record_type", ""),
            message_level=record.get("message_level", ""),
            validation_number=record.get("validation_number", ""),
            message_text=record.get("message_text", ""),
            transaction_sequence=record.transaction_sequence,
        )

    # Parties

    def _publisher(self, record: CwrRecord) -> None:
        work = self.session.work
        name = record.get("publisher_name", "")
        party = record["interested_party_number"] or \
            self.catalog.synthesize_party_number(name, "", record["pr_society"])
        self.session.add_shareholder(
            party,
            name,
            controlled=record.record_type == "SPU",
            ipi_name_number=record["publisher_ipi_name_number"],
            ipi_base_number=record["publisher_ipi_base_number"],
            pr_society=record["pr_society"],
            mr_society=record["mr_society"],
            sr_society=record["sr_society"],
            tax_id=record.get("tax_id", ""),
            usa_license_indicator=record.get("usa_license_indicator", ""),
            unknown_indicator=record.get("publisher_unknown_indicator", ""),
        )
        self.session.add_share(
            party,
            record.get("publisher_type", ""),
            pr_ownership_share=record["pr_ownership_share"],
            mr_ownership_share=record["mr_ownership_share"],
            sr_ownership_share=record["sr_ownership_share"],
            link=record.get("publisher_sequence_number", 0),
            special_agreements_indicator=record.get("special_agreements_indicator", ""),
            first_recording_refusal=record.get("first_recording_refusal", ""),
            submitter_agreement_number=record.get("submitter_agreement_number", ""),
            society_agreement_number=record.get("society_agreement_number", ""),
            agreement_type=record.get("agreement_type", ""),
            isac=record.get("isac", ""),
        )
        logger.debug(f"Work {work.id}: {record.record_type} {party}")

    def _writer(self, record: CwrRecord) -> None:
        work = self.session.work
        last_name = record.get("writer_last_name", "")
        first_name = record.get("writer_first_name", "")
        party = record["interested_party_number"] or \
            self.catalog.synthesize_party_number(last_name, first_name, record["pr_society"])
        self.session.add_shareholder(
            party,
            last_name,
            first_name=first_name,
            controlled=record.record_type == "SWR",
            ipi_name_number=record["writer_ipi_name_number"],
            ipi_base_number=record["writer_ipi_base_number"],
            pr_society=record["pr_society"],
            mr_society=record["mr_society"],
            sr_society=record["sr_society"],
            tax_id=record.get("tax_id", ""),
            personal_number=record.get("personal_number", ""),
            usa_license_indicator=record.get("usa_license_indicator", ""),
            unknown_indicator=record.get("writer_unknown_indicator", ""),
        )
        self.session.add_share(
            party,
            record.get("writer_designation_code", ""),
            pr_ownership_share=record["pr_ownership_share"],
            mr_ownership_share=record["mr_ownership_share"],
            sr_ownership_share=record["sr_ownership_share"],
            reversionary_indicator=record.get("reversionary_indicator", ""),
            first_recording_refusal=record.get("first_recording_refusal", ""),
            work_for_hire=record.get("work_for_hire", ""),
        )
        logger.debug(f"Work {work.id}: {record.record_type} {party}")

    def _territory(self, record: CwrRecord) -> None:
        share = self.session.share
        if record["tis_numeric_code"] is None:
            self._note(f"{record.record_type} without a TIS code -- skipped.", record, "MISSING_TIS")
            return
        party = record["interested_party_number"]
        if party and party != share.interested_party_number:
            self._note(
                f"{record.record_type} for party {party} follows a share of {share.interested_party_number}.",
                record,
                "TERRITORY_PARTY_MISMATCH",
            )
        self.session.add_territory(
            record["tis_numeric_code"],
            record.get("inclusion_exclusion_indicator", "I"),
            pr_collection_share=record["pr_collection_share"],
            mr_collection_share=record["mr_collection_share"],
            sr_collection_share=record["sr_collection_share"],
            shares_change=record.get("shares_change", ""),
        )

    def _publisher_for_writer(self, record: CwrRecord) -> None:
        work = self.session.work
        publisher_party = record["publisher_ip_number"]
        link = record["publisher_sequence_number"] if self.version >= CwrVersion.V22 else None
        if not link:
            link = next(
                (
                    share.link for share in work.shares
                    if share.interested_party_number == publisher_party
                    and share.role_class in (RoleClass.PUBLISHER, RoleClass.SUB_PUBLISHER)
                ),
                None,
            )
        if not link:
            self._note(f"PWR names publisher {publisher_party}, which has no chain in this work.",
                       record, "UNRESOLVED_CHAIN")
            return

        writer_party = record["writer_ip_number"]
        if writer_party:
            targets = [
                share for share in work.shares
                if share.interested_party_number == writer_party
                and share.role_class not in (RoleClass.PUBLISHER, RoleClass.SUB_PUBLISHER)
            ]
        else:
            targets = [self.session.share]
        for share in targets:
            if not share.link:
                share.link = link

    # Work sub-records

    def _alternate_title(self, record: CwrRecord) -> None:
        self.session.add_alternate_title(
            record.get("alternate_title", ""),
            record.get("title_type", ""),
            record.get("language_code", ""),
        )

    def _title_reference(self, record: CwrRecord) -> None:
        fields = {name: value for name, value in record.fields.items() if name != "title"}
        self.session.set_title_reference(record.record_type, record.get("title", ""), **fields)

    def _performer(self, record: CwrRecord) -> None:
        self.session.add_performer(
            record.get("performing_artist_last_name", ""),
            record.get("performing_artist_first_name", ""),
            ipi_name_number=record["performing_artist_ipi_name_number"],
            ipi_base_number=record["performing_artist_ipi_base_number"],
        )

    def _recording(self, record: CwrRecord) -> None:
        work = self.session.work
        isrc = record.get("isrc", "")
        valid = bool(isrc) and self.session.add_isrc(isrc)
        if valid:
            self.catalog.add_track(
                isrc,
                work_id=work.id,
                title=record.get("recording_title", ""),
                version_title=record.get("version_title", ""),
                display_artist=record.get("display_artist", ""),
                label=record.get("record_label", ""),
                track_id=record.get("submitter_recording_identifier", ""),
                duration=record["first_release_duration"],
                recording_format=record.get("recording_format", ""),
                recording_technique=record.get("recording_technique", ""),
                isrc_validity=record.get("isrc_validity", ""),
                iswc=work.iswc,
            )
        if record.get("ean", ""):
            self.catalog.add_release(
                record["ean"],
                isrc=isrc if valid else None,
                title=record.get("first_album_title", ""),
                label=record.get("first_album_label", ""),
                catalog_number=record.get("first_release_catalog_number", ""),
                release_date=record["first_release_date"],
                media_type=record.get("media_type", ""),
            )
        if record.get("display_artist", ""):
            self.catalog.add_performer(record["display_artist"])

    def _origin(self, record: CwrRecord) -> None:
        fields = {
            name: value for name, value in record.fields.items()
            if name != "intended_purpose" and value is not None
        }
        self.session.add_origin(record.get("intended_purpose", ""), **fields)

    def _instrumentation(self, record: CwrRecord) -> None:
        self.session.add_instrumentation(
            number_of_voices=record["number_of_voices"],
            standard_instrumentation_type=record.get("standard_instrumentation_type", ""),
            instrumentation_description=record.get("instrumentation_description", ""),
        )

    def _instrument_detail(self, record: CwrRecord) -> None:
        self.session.add_instrument_detail(record.get("instrument_code", ""), record["number_of_players"])

    def _additional_info(self, record: CwrRecord) -> None:
        self.session.add_additional_info(
            record["society_number"],
            record.get("type_of_right", ""),
            work_number=record.get("work_number", ""),
            subject_code=record.get("subject_code", ""),
            note=record.get("note", ""),
        )

    def _cross_reference(self, record: CwrRecord) -> None:
        self.session.add_cross_reference(
            record["organisation_code"],
            record.get("identifier", ""),
            identifier_type=record.get("identifier_type", "W"),
            validity=record.get("validity", "Y"),
        )
