"""Transaction assembler: serializes a catalog into a CWR transmission.

The transmission is laid out as HDR, one GRH..GRT group per transaction type
present (NWR, REV, ISW, EXC in that order) and a closing TRL. Works are
validated before they are written; a work that fails is skipped and
reported, never partially emitted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from cwr_registry.codec.codec import RecordCodec
from cwr_registry.codec.records import CwrRecord
from cwr_registry.core.diagnostics import DiagnosticLog
from cwr_registry.core.settings import Settings
from cwr_registry.core.vocabulary import (
    GROUP_ORDER,
    ROLE_PRIORITY,
    CwrVersion,
    RoleClass,
    TransactionType,
)
from cwr_registry.models import Share, Shareholder, TerritoryEntry, Track, Work
from cwr_registry.services.business_rules import ShareRules, WorkRules
from cwr_registry.services.catalog import Catalog
from cwr_registry.utils.filenames import cwr_filename
from cwr_registry.utils.validators import EANValidator, IPINameValidator, ISRCValidator, ValidationResult

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"
TRANSMISSION_RECORDS = frozenset({"HDR", "GRH", "GRT", "TRL"})


@dataclass
class AssemblyResult:
    """CWR text plus the audit trail of what went into it."""
    text: str
    work_ids: List[str]
    filename: str
    diagnostics: DiagnosticLog = field(default_factory=DiagnosticLog)

    @property
    def lines(self) -> List[str]:
        return self.text.split(LINE_TERMINATOR)[:-1] if self.text else []


@dataclass
class _Counters:
    records: int = 0
    transactions: int = 0
    group_transactions: int = 0
    group_records: int = 0
    sequence: int = 0


def primary_transaction_type(work: Work) -> Optional[TransactionType]:
    """The group a work is written in: its first registration bit in group order."""
    flags = work.transaction_flags
    for transaction_type in GROUP_ORDER:
        if flags & transaction_type:
            return transaction_type
    return None


class TransactionAssembler:
    """
    Builds a CWR transmission from a catalog.

    The assembler is single-use per call to ``assemble``; counters and the
    diagnostic log are reset at the start of every run.
    """

    def __init__(
        self,
        catalog: Catalog,
        settings: Optional[Settings] = None,
        character_filter: Optional[Callable[[str], str]] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the assembler.

        Args:
            catalog: works and parties to serialize
            settings: header values and rules; defaults to the catalog's settings
            character_filter: applied to emitted titles and names
            now: clock for creation date/time; defaults to ``datetime.now``
        """
        self.catalog = catalog
        self.settings = settings or catalog.settings
        self.character_filter = character_filter or (lambda text: text)
        self.now = now or datetime.now
        self.version = CwrVersion.parse(self.settings.cwr_version)
        self.codec = RecordCodec(self.version)
        self.diagnostics = DiagnosticLog(logger_name="assembler")
        self._counters = _Counters()
        self._lines: List[str] = []

    def assemble(self) -> AssemblyResult:
        """
        Serialize every admissible work.

        Returns:
            AssemblyResult: CRLF-terminated text (empty when no work was
            written), the de-duplicated ids of the written works, the
            transmission filename and the diagnostics of the run
        """
        self.diagnostics = DiagnosticLog(logger_name="assembler")
        self._counters = _Counters()
        self._lines = []
        timestamp = self.now()
        filename = cwr_filename(
            self.settings.submitter_code or "",
            self.settings.receiver_society,
            self.settings.file_sequence,
            self.version,
            today=timestamp.date(),
        )

        if not self.settings.submitter_code or not self.settings.submitter_ipi:
            self.diagnostics.error("CANNOT GENERATE CWR! Submitter code or IPI not supplied.", code="NO_SUBMITTER")
            return AssemblyResult("", [], filename, self.diagnostics)
        submitter = self._find_submitter()
        if submitter is None:
            self.diagnostics.error(
                "CANNOT GENERATE CWR! Submitter is not a registered shareholder; add it with add_shareholder().",
                code="SUBMITTER_NOT_REGISTERED",
            )
            return AssemblyResult("", [], filename, self.diagnostics)
        if not self.settings.receiver_society:
            self.diagnostics.warning("No receiver society specified!", code="NO_RECEIVER")

        self._emit_header(submitter, timestamp)

        # Work-level validation runs once; it also settles each work's transaction type
        work_results: Dict[str, ValidationResult] = {}
        present = TransactionType.NONE
        for work in self.catalog.works:
            work_results[work.id] = WorkRules.validate_work(work, self.catalog, self.settings, self.diagnostics)
            present |= TransactionType(work.transaction_type)

        group_transaction_type = "ACK" if present & TransactionType.ACK else None
        work_ids: List[str] = []
        group_id = 0
        for transaction_type in GROUP_ORDER:
            members = [work for work in self.catalog.works if primary_transaction_type(work) == transaction_type]
            admitted = [work for work in members if self._admit(work, work_results[work.id])]
            if not admitted:
                continue
            group_id += 1
            self._counters.group_transactions = 0
            self._counters.group_records = 0
            group_type = group_transaction_type or transaction_type.name
            self._emit(CwrRecord("GRH", {
                "transaction_type": group_type,
                "group_id": group_id,
                "version_number": self.version,
            }))

            for work in admitted:
                self._emit_transaction(work, transaction_type, group_type)
                work_ids.append(work.id)
                self._counters.transactions += 1
                self._counters.group_transactions += 1

            self._emit(CwrRecord("GRT", {
                "group_id": group_id,
                "transaction_count": self._counters.group_transactions,
                "record_count": self._counters.group_records + 1,
            }))

        self._emit(CwrRecord("TRL", {
            "group_count": group_id,
            "transaction_count": self._counters.transactions,
            "record_count": self._counters.records + 1,
        }))

        work_ids = list(dict.fromkeys(work_ids))
        text = LINE_TERMINATOR.join(self._lines) + LINE_TERMINATOR if work_ids else ""
        logger.info(f"Assembled {len(work_ids)} of {len(self.catalog)} works into {filename}")
        return AssemblyResult(text, work_ids, filename, self.diagnostics)

    # Plumbing

    def _emit(self, record: CwrRecord, work_id: Optional[str] = None) -> bool:
        """Encode one record, advancing the counters when a line was produced."""
        body = record.record_type not in TRANSMISSION_RECORDS
        if body:
            record.transaction_sequence = self._counters.group_transactions
            record.record_sequence = self._counters.sequence
        result = self.codec.encode(record)
        for diagnostic in result.diagnostics:
            diagnostic.work_id = work_id
        self.diagnostics.extend(result.diagnostics)
        if not result.line:
            return False
        self._lines.append(result.line)
        self._counters.records += 1
        self._counters.group_records += 1
        if body:
            self._counters.sequence += 1
        return True

    def _text(self, value: Any) -> Any:
        if isinstance(value, str) and value:
            return self.character_filter(value)
        return value

    def _find_submitter(self) -> Optional[Shareholder]:
        ipi = self.settings.submitter_ipi
        if self.catalog.has_shareholder(ipi):
            return self.catalog.get_shareholder(ipi)
        wanted = IPINameValidator.normalize(ipi)
        for shareholder in self.catalog.shareholders:
            if wanted and shareholder.ipi_name_number == wanted:
                return shareholder
        return None

    def _admit(self, work: Work, work_result: ValidationResult) -> bool:
        result = work_result
        if result.is_valid:
            result = ShareRules.validate_shares(work, self.catalog, self.settings)
        if result.is_valid:
            return True
        for error in result.errors:
            self.diagnostics.error(
                f"SKIPPING WORK - Title: {work.title}: {error.message}",
                code=error.code,
                work_id=work.id,
            )
        return False

    def _emit_header(self, submitter: Shareholder, timestamp: datetime) -> None:
        fields = {
            "sender_type": self.settings.sender_type,
            "sender_id": submitter.ipi_name_number or self.settings.submitter_ipi,
            "sender_name": self._text(submitter.display_name),
            "edi_version": self.settings.edi_version,
            "creation_date": timestamp.date(),
            "creation_time": timestamp.time().replace(microsecond=0),
            "transmission_date": timestamp.date(),
            "character_set": self.settings.character_set,
            "cwr_version": self.version,
            "cwr_revision": self.settings.cwr_revision,
            "software_package": self.settings.software_package,
            "software_package_version": self.settings.software_package_version,
        }
        self._emit(CwrRecord("HDR", fields))

    # Transactions

    def _emit_transaction(self, work: Work, transaction_type: TransactionType, group_type: str) -> None:
        self._counters.sequence = 0
        if group_type == "ACK" and work.acknowledgement is not None \
                and work.transaction_flags & TransactionType.ACK:
            self._emit(CwrRecord("ACK", work.acknowledgement.model_dump()), work.id)

        self._emit(CwrRecord(transaction_type.name, {
            "work_title": self._text(work.title),
            "language_code": work.language_code,
            "submitter_work_id": work.id,
            "iswc": work.iswc,
            "copyright_date": work.copyright_date,
            "copyright_number": work.copyright_number,
            "distribution_category": work.distribution_category,
            "duration": work.duration,
            "recorded_indicator": work.recorded_indicator,
            "text_music_relationship": work.text_music_relationship,
            "composite_type": work.composite_type,
            "version_type": work.version_type,
            "excerpt_type": work.excerpt_type,
            "music_arrangement": work.music_arrangement,
            "lyric_adaptation": work.lyric_adaptation,
            "contact_name": self.settings.contact_name,
            "contact_id": self.settings.contact_id,
            "work_type": work.work_type,
            "grand_rights_indicator": work.grand_rights_indicator,
            "composite_component_count": work.composite_component_count,
            "publication_date": work.publication_date,
            "exceptional_clause": work.exceptional_clause,
            "opus_number": work.opus_number,
            "catalogue_number": work.catalogue_number,
            "priority_flag": work.priority_flag,
        }), work.id)

        publishers, writers = self._partition_shares(work)
        chains, publisher_sequence = self._emit_publishers(work, publishers)
        self._emit_writers(work, writers, chains, publisher_sequence)
        self._emit_sub_records(work)

    def _sorted_shares(self, work: Work) -> List[Tuple[Share, Shareholder]]:
        pairs = [(share, self.catalog.shareholder_for(share)) for share in work.shares]
        pairs.sort(key=lambda pair: (
            not pair[1].controlled,
            pair[0].link,
            ROLE_PRIORITY.get(pair[0].role, len(ROLE_PRIORITY)),
        ))
        return pairs

    def _rewrite_territories(self, share: Share) -> Share:
        """Copy of ``share`` whose territories are limited to the receiver's countries."""
        targets = self.settings.tis_rewrite_rules[self.settings.receiver_society]
        entries = [
            TerritoryEntry(
                tis_code=country.tis_code,
                indicator="I",
                pr_collection_share=country.pr_collection_share,
                mr_collection_share=country.mr_collection_share,
                sr_collection_share=country.sr_collection_share,
                shares_change=country.shares_change,
            )
            for iso, country in self.catalog.collection_values(share).items()
            if iso in targets
        ]
        return share.model_copy(update={"territories": entries})

    def _partition_shares(self, work: Work) -> Tuple[List[Tuple[Share, Shareholder]], List[Tuple[Share, Shareholder]]]:
        rewrite = self.settings.tis_rewrite_enabled and \
            self.settings.receiver_society in self.settings.tis_rewrite_rules
        if rewrite:
            self.diagnostics.notice(
                f"Re-writing collection shares for society #{self.settings.receiver_society} to be valid only "
                f"in territories: {', '.join(self.settings.tis_rewrite_rules[self.settings.receiver_society])}",
                code="TIS_REWRITE",
                work_id=work.id,
            )

        publishers = []
        writers = []
        for share, shareholder in self._sorted_shares(work):
            if rewrite:
                share = self._rewrite_territories(share)
            role_class = share.role_class
            if role_class == RoleClass.PUBLISHER:
                if share.pr_ownership_share + share.mr_ownership_share > 0 or share.territories:
                    publishers.append((share, shareholder))
            elif role_class == RoleClass.SUB_PUBLISHER or (
                    role_class == RoleClass.INCOME_PARTICIPANT and shareholder.is_publisher):
                if share.territories:
                    publishers.append((share, shareholder))
                else:
                    self.diagnostics.notice(
                        f"Sub-Publisher '{shareholder.display_name}' has no collection rights in the relevant "
                        f"territories - removed from CWR.",
                        code="NO_COLLECTION_RIGHTS",
                        work_id=work.id,
                    )
            elif role_class is not None:
                writers.append((share, shareholder))
        return publishers, writers

    def _emit_territories(self, work: Work, record_type: str, share: Share, party_number: str) -> None:
        for sequence_number, entry in enumerate(share.territories, start=1):
            fields = {
                "interested_party_number": party_number,
                "pr_collection_share": entry.pr_collection_share,
                "mr_collection_share": entry.mr_collection_share,
                "sr_collection_share": entry.sr_collection_share,
                "inclusion_exclusion_indicator": entry.indicator,
                "tis_numeric_code": entry.tis_code,
                "shares_change": entry.shares_change,
                "sequence_number": sequence_number,
            }
            self._emit(CwrRecord(record_type, fields), work.id)

    def _emit_publishers(self, work: Work, publishers) -> Tuple[Dict[int, List[str]], Dict[str, int]]:
        chains: Dict[int, List[str]] = {}
        publisher_sequence: Dict[str, int] = {}
        for share, shareholder in publishers:
            party = shareholder.interested_party_number
            chain = share.link
            if not chain:
                self.diagnostics.warning(
                    f"No chain of title declared for {shareholder.display_name} (work: {work.title})",
                    code="NO_CHAIN",
                    work_id=work.id,
                )
            if share.role == "E":
                members = chains.setdefault(chain, [])
                if party in members:
                    members.remove(party)
                members.insert(0, party)
                publisher_sequence[party] = chain
            if share.co_publisher_link:
                members = chains.setdefault(share.co_publisher_link, [])
                if party not in members:
                    members.append(party)

            record_type = "SPU" if shareholder.controlled else "OPU"
            self._emit(CwrRecord(record_type, {
                "publisher_sequence_number": chain,
                "interested_party_number": party,
                "publisher_name": self._text(shareholder.last_name),
                "publisher_unknown_indicator": shareholder.unknown_indicator,
                "publisher_type": share.role,
                "tax_id": shareholder.tax_id,
                "publisher_ipi_name_number": shareholder.ipi_name_number,
                "submitter_agreement_number": share.submitter_agreement_number,
                "pr_society": shareholder.pr_society,
                "pr_ownership_share": share.pr_ownership_share,
                "mr_society": shareholder.mr_society,
                "mr_ownership_share": share.mr_ownership_share,
                "sr_society": shareholder.sr_society,
                "sr_ownership_share": share.sr_ownership_share,
                "special_agreements_indicator": share.special_agreements_indicator,
                "first_recording_refusal": share.first_recording_refusal,
                "publisher_ipi_base_number": shareholder.ipi_base_number,
                "isac": share.isac,
                "society_agreement_number": share.society_agreement_number,
                "agreement_type": share.agreement_type,
                "usa_license_indicator": shareholder.usa_license_indicator,
            }), work.id)

            if shareholder.controlled:
                self._emit_territories(work, "SPT", share, party)
            elif self.version >= CwrVersion.V22:
                self._emit_territories(work, "OPT", share, party)
        return chains, publisher_sequence

    def _emit_writers(self, work: Work, writers, chains: Dict[int, List[str]],
                      publisher_sequence: Dict[str, int]) -> None:
        for share, shareholder in writers:
            party = shareholder.interested_party_number
            temporary = not shareholder.controlled and shareholder.is_temporary
            record_type = "SWR" if shareholder.controlled else "OWR"
            self._emit(CwrRecord(record_type, {
                "interested_party_number": "" if temporary else party,
                "writer_last_name": self._text(shareholder.last_name),
                "writer_first_name": self._text(shareholder.first_name),
                "writer_unknown_indicator": shareholder.unknown_indicator,
                "writer_designation_code": share.role,
                "tax_id": shareholder.tax_id,
                "writer_ipi_name_number": None if temporary else shareholder.ipi_name_number,
                "pr_society": shareholder.pr_society,
                "pr_ownership_share": share.pr_ownership_share,
                "mr_society": shareholder.mr_society,
                "mr_ownership_share": share.mr_ownership_share,
                "sr_society": shareholder.sr_society,
                "sr_ownership_share": share.sr_ownership_share,
                "reversionary_indicator": share.reversionary_indicator,
                "first_recording_refusal": share.first_recording_refusal,
                "work_for_hire": share.work_for_hire,
                "writer_ipi_base_number": None if temporary else shareholder.ipi_base_number,
                "personal_number": shareholder.personal_number,
                "usa_license_indicator": shareholder.usa_license_indicator,
            }), work.id)

            if shareholder.controlled:
                self._emit_territories(work, "SWT", share, party)
            elif self.version >= CwrVersion.V22:
                self._emit_territories(work, "OWT", share, party)

            linked = chains.get(share.link) if share.link else None
            if not shareholder.controlled and not (self.version >= CwrVersion.V22 and linked):
                continue
            if not linked:
                if share.link:
                    self.diagnostics.warning(
                        f"Writer {shareholder.display_name} is linked to chain {share.link}, which has no "
                        f"original publisher (work: {work.title})",
                        code="MISSING_CHAIN",
                        work_id=work.id,
                    )
                continue
            for publisher_party in linked:
                publisher = self.catalog.get_shareholder(publisher_party)
                fields = {
                    "publisher_ip_number": publisher_party,
                    "publisher_name": self._text(publisher.last_name),
                    "submitter_agreement_number": share.submitter_agreement_number,
                    "society_agreement_number": share.society_agreement_number,
                    "writer_ip_number": party,
                }
                if self.version >= CwrVersion.V22:
                    fields["publisher_sequence_number"] = publisher_sequence.get(publisher_party, share.link)
                self._emit(CwrRecord("PWR", fields), work.id)

    # Work sub-records

    def _title_fields(self, reference) -> Dict[str, Any]:
        fields = reference.model_dump()
        for name in ("title", "writer_1_last_name", "writer_1_first_name", "writer_2_last_name", "writer_2_first_name"):
            fields[name] = self._text(fields[name])
        return fields

    def _emit_sub_records(self, work: Work) -> None:
        for alternate in work.alternate_titles:
            self._emit(CwrRecord("ALT", {
                "alternate_title": self._text(alternate.title),
                "title_type": alternate.title_type,
                "language_code": alternate.language_code,
            }), work.id)

        if work.entire_work is not None:
            self._emit(CwrRecord("EWT", self._title_fields(work.entire_work)), work.id)
        if work.original_work is not None:
            self._emit(CwrRecord("VER", self._title_fields(work.original_work)), work.id)

        for index in work.performer_refs:
            performer = self.catalog.get_performer(index)
            self._emit(CwrRecord("PER", {
                "performing_artist_last_name": self._text(performer.last_name),
                "performing_artist_first_name": self._text(performer.first_name),
                "performing_artist_ipi_name_number": performer.ipi_name_number,
                "performing_artist_ipi_base_number": performer.ipi_base_number,
            }), work.id)

        for fields in self._recordings(work):
            self._emit(CwrRecord("REC", fields), work.id)

        for origin in work.origins:
            fields = origin.model_dump()
            fields["production_title"] = self._text(fields["production_title"])
            fields["episode_title"] = self._text(fields["episode_title"])
            self._emit(CwrRecord("ORN", fields), work.id)

        for summary in work.instrumentation:
            self._emit(CwrRecord("INS", summary.model_dump()), work.id)
        for detail in work.instrument_details:
            self._emit(CwrRecord("IND", detail.model_dump()), work.id)

        if work.component is not None:
            self._emit(CwrRecord("COM", self._title_fields(work.component)), work.id)

        for info in work.additional_info:
            self._emit(CwrRecord("ARI", {
                "society_number": info.society_code,
                "work_number": info.work_number,
                "type_of_right": info.type_of_right,
                "subject_code": info.subject_code,
                "note": info.note,
            }), work.id)

        if self.version >= CwrVersion.V22:
            for reference in work.cross_references:
                self._emit(CwrRecord("XRF", reference.model_dump()), work.id)

    def _recordings(self, work: Work) -> List[Dict[str, Any]]:
        """REC field sets: one per release of each valid ISRC, or one per ISRC without releases."""
        recordings = []
        for isrc in work.isrcs:
            if not ISRCValidator.is_valid(isrc):
                self.diagnostics.warning(
                    f"ISRC '{isrc}' attached to work '{work.title}' is invalid -- skipping 'REC' entry.",
                    code="INVALID_ISRC",
                    work_id=work.id,
                )
                continue
            track = self.catalog.get_track(isrc)
            base = self._track_fields(work, ISRCValidator.normalize(isrc), track)
            releases = [self.catalog.get_release(upc) for upc in (track.releases if track else [])]
            releases = [release for release in releases if release is not None]
            if not releases:
                recordings.append(base)
                continue
            for release in releases:
                fields = dict(base)
                if EANValidator.is_valid(release.upc):
                    fields["ean"] = EANValidator.normalize(release.upc)
                else:
                    self.diagnostics.warning(
                        f"EAN/UPC {release.upc} is invalid -- replacing with spaces.",
                        code="INVALID_EAN",
                        work_id=work.id,
                    )
                fields.update({
                    "first_release_date": release.release_date,
                    "first_album_title": self._text(release.title),
                    "first_album_label": self._text(release.label),
                    "first_release_catalog_number": release.catalog_number,
                    "media_type": release.media_type,
                })
                recordings.append(fields)
        return recordings

    def _track_fields(self, work: Work, isrc: str, track: Optional[Track]) -> Dict[str, Any]:
        fields = {
            "recording_format": "A",
            "first_release_duration": work.duration,
            "isrc": isrc,
        }
        if track is None:
            return fields
        if track.recording_format:
            fields["recording_format"] = track.recording_format
        fields["recording_technique"] = track.recording_technique
        if track.duration:
            fields["first_release_duration"] = track.duration
        if self.version >= CwrVersion.V22:
            fields.update({
                "recording_title": self._text(track.title),
                "version_title": self._text(track.version_title),
                "display_artist": self._text(track.display_artist),
                "record_label": self._text(track.label),
                "isrc_validity": "Y",
                "submitter_recording_identifier": track.track_id,
            })
        return fields
