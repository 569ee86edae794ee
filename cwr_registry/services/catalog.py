"""Catalog service: the in-memory registry of works, parties, recordings and releases.

Both directions build the catalog through these calls. Callers get the
created model objects back and pass them (or a work id) to later calls; the
"current work / current share" convenience lives in ``CatalogSession``.
Data problems that do not stop a call are reported on the catalog's
diagnostic log.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import ValidationError as ModelValidationError

from cwr_registry.core.diagnostics import DiagnosticLog
from cwr_registry.core.settings import Settings, get_settings
from cwr_registry.core.vocabulary import NO_SOCIETY, TEMPORARY_PARTY_CEILING, TYPES_OF_RIGHT
from cwr_registry.models import (
    Acknowledgement,
    AdditionalInfo,
    AlternateTitle,
    CrossReference,
    InstrumentDetail,
    InstrumentationSummary,
    Performer,
    Release,
    Share,
    Shareholder,
    SocietyMessage,
    TerritoryEntry,
    TitleReference,
    Track,
    TransmissionInfo,
    Work,
    WorkOrigin,
)
from cwr_registry.models.base import normalize_party_number
from cwr_registry.services.business_rules import percentage_controlled
from cwr_registry.services.identity import DefaultIdentityResolver, PartyIdentityResolver
from cwr_registry.services.territory import CountryShare, TerritoryResolver, get_territory_resolver
from cwr_registry.utils.validators import IPIBaseValidator, IPINameValidator, ISRCValidator

logger = logging.getLogger(__name__)

WorkHandle = Union[Work, str]

TITLE_REFERENCE_SLOTS = {
    "COM": "component",
    "EWT": "entire_work",
    "VER": "original_work",
}


class CatalogError(Exception):
    """Base exception for catalog errors."""
    pass


class WorkNotFoundError(CatalogError):
    """Raised when a work id is not in the catalog."""
    pass


class ShareholderNotFoundError(CatalogError):
    """Raised when an interested-party number is not in the shareholder registry."""
    pass


class Catalog:
    """
    Mutable registry of works and everything they reference.

    Works keep their registration order (``Work.sequence`` is 1-indexed).
    Shareholders, performers, tracks and releases are catalog-wide and are
    referenced from works by key.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        territories: Optional[TerritoryResolver] = None,
        identity: Optional[PartyIdentityResolver] = None,
        diagnostics: Optional[DiagnosticLog] = None,
    ):
        """
        Initialize an empty catalog.

        Args:
            settings: configuration; defaults to ``get_settings()``
            territories: TIS resolver; defaults to the bundled table
            identity: unknown-writer and IPI lookups
            diagnostics: log to report data problems on
        """
        self.settings = settings or get_settings()
        self.territories = territories or get_territory_resolver()
        self.identity = identity or DefaultIdentityResolver()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog(logger_name="catalog")
        self.transmission = TransmissionInfo()
        self._works: Dict[str, Work] = {}
        self._shareholders: Dict[str, Shareholder] = {}
        self._synthesized: Set[str] = set()
        self._performers: List[Performer] = []
        self._tracks: Dict[str, Track] = {}
        self._releases: Dict[str, Release] = {}

    def __len__(self) -> int:
        return len(self._works)

    def __contains__(self, work_id: str) -> bool:
        return str(work_id).strip() in self._works

    # Works

    @property
    def works(self) -> List[Work]:
        return list(self._works.values())

    def register_work(self, work_id: str, title: str = "", **attributes) -> Work:
        """
        Create a work, or update the existing work with the same id.

        Args:
            work_id: submitter work id
            title: work title; ignored when blank and the work already exists
            **attributes: any other ``Work`` field

        Returns:
            Work: the created or updated work

        Raises:
            CatalogError: If the id is blank or an attribute is invalid
        """
        key = str(work_id or "").strip()
        if not key:
            raise CatalogError("Work id is required")

        work = self._works.get(key)
        try:
            if work is None:
                work = Work(id=key, title=title or "", sequence=len(self._works) + 1, **attributes)
                self._works[key] = work
                logger.debug(f"Registered work {key} as #{work.sequence}")
                return work

            if title:
                work.title = title
            for name, value in attributes.items():
                setattr(work, name, value)
        except (ModelValidationError, ValueError) as e:
            raise CatalogError(f"Invalid work data for {key}: {e}") from e
        return work

    def get_work(self, work_id: str) -> Work:
        work = self._works.get(str(work_id).strip())
        if work is None:
            raise WorkNotFoundError(f"Work {work_id} not found")
        return work

    def _work(self, work: WorkHandle) -> Work:
        if isinstance(work, Work):
            return work
        return self.get_work(work)

    # Shareholders and shares

    @property
    def shareholders(self) -> List[Shareholder]:
        return list(self._shareholders.values())

    def get_shareholder(self, interested_party_number: str) -> Shareholder:
        key = normalize_party_number(interested_party_number)
        shareholder = self._shareholders.get(key) if key else None
        if shareholder is None:
            raise ShareholderNotFoundError(f"Shareholder {interested_party_number} not found")
        return shareholder

    def has_shareholder(self, interested_party_number: str) -> bool:
        key = normalize_party_number(interested_party_number)
        return bool(key) and key in self._shareholders

    def add_shareholder(
        self,
        interested_party_number: str,
        last_name: str,
        first_name: str = "",
        controlled: bool = False,
        ipi_name_number: Optional[str] = None,
        ipi_base_number: Optional[str] = None,
        pr_society: Optional[int] = None,
        mr_society: Optional[int] = None,
        sr_society: Optional[int] = None,
        **attributes
    ) -> Shareholder:
        """
        Register a shareholder; a no-op returning the existing one if the number is known.

        Missing society affiliations default to 99 (no society). IPI numbers
        that fail their checksum are dropped with a warning.

        Raises:
            CatalogError: If the party number or name is missing
        """
        key = normalize_party_number(interested_party_number)
        if key and key in self._shareholders:
            return self._shareholders[key]

        ipi_name = None
        if ipi_name_number not in (None, ""):
            if IPINameValidator.is_valid(ipi_name_number):
                ipi_name = IPINameValidator.normalize(ipi_name_number)
            else:
                self.diagnostics.warning(
                    f"IPI Name Number '{ipi_name_number}' of party {key} failed the checksum and was dropped.",
                    code="INVALID_IPI_NAME",
                )
        ipi_base = None
        if ipi_base_number not in (None, ""):
            if IPIBaseValidator.is_valid(ipi_base_number):
                ipi_base = IPIBaseValidator.normalize(ipi_base_number)
            else:
                self.diagnostics.warning(
                    f"IPI Base Number '{ipi_base_number}' of party {key} failed the checksum and was dropped.",
                    code="INVALID_IPI_BASE",
                )

        attributes.setdefault("temporary", key in self._synthesized)
        try:
            shareholder = Shareholder(
                interested_party_number=interested_party_number,
                last_name=last_name,
                first_name=first_name or "",
                controlled=controlled,
                ipi_name_number=ipi_name,
                ipi_base_number=ipi_base,
                pr_society=pr_society or NO_SOCIETY,
                mr_society=mr_society or NO_SOCIETY,
                sr_society=sr_society or NO_SOCIETY,
                **attributes
            )
        except ModelValidationError as e:
            raise CatalogError(f"Invalid shareholder {interested_party_number}: {e}") from e

        self._shareholders[shareholder.interested_party_number] = shareholder
        return shareholder

    def synthesize_party_number(self, last_name: str, first_name: str = "", society: Optional[int] = None) -> str:
        """
        Party number for a writer that arrived without one.

        The identity resolver is asked first, then a temporary shareholder
        with the same name and society is reused, and otherwise the next
        free temporary number is allocated (starting at 1).
        """
        resolved = normalize_party_number(self.identity.resolve_unknown_writer(last_name, first_name, society))
        if resolved:
            return resolved

        wanted = (last_name.strip().upper(), (first_name or "").strip().upper(), society or NO_SOCIETY)
        highest = max((int(number) for number in self._synthesized), default=0)
        for shareholder in self._shareholders.values():
            if not shareholder.is_temporary:
                continue
            found = (shareholder.last_name.upper(), shareholder.first_name.upper(), shareholder.pr_society)
            if found == wanted:
                return shareholder.interested_party_number

        candidate = highest + 1
        while str(candidate) in self._shareholders:
            candidate += 1
        if candidate >= TEMPORARY_PARTY_CEILING:
            raise CatalogError("Temporary party numbers are exhausted")
        self._synthesized.add(str(candidate))
        return str(candidate)

    def add_share(
        self,
        work: WorkHandle,
        interested_party_number: str,
        role: str,
        pr_ownership_share: Any = 0,
        mr_ownership_share: Any = 0,
        sr_ownership_share: Any = 0,
        link: int = 0,
        **attributes
    ) -> Share:
        """
        Append a share to a work.

        Args:
            work: the work, or its id
            interested_party_number: a registered shareholder
            role: publisher type or writer designation
            pr_ownership_share: performing ownership percentage
            mr_ownership_share: mechanical ownership percentage
            sr_ownership_share: synchronisation ownership percentage
            link: chain-of-title number
            **attributes: other ``Share`` fields

        Returns:
            Share: the appended share

        Raises:
            WorkNotFoundError: If the work id is unknown
            ShareholderNotFoundError: If the party is not registered
            CatalogError: If the share data is invalid
        """
        target = self._work(work)
        shareholder = self.get_shareholder(interested_party_number)
        try:
            share = Share(
                interested_party_number=shareholder.interested_party_number,
                role=role,
                pr_ownership_share=pr_ownership_share,
                mr_ownership_share=mr_ownership_share,
                sr_ownership_share=sr_ownership_share,
                link=link or 0,
                **attributes
            )
        except ModelValidationError as e:
            raise CatalogError(f"Invalid share for {interested_party_number} in work {target.id}: {e}") from e
        target.shares.append(share)
        return share

    def shareholder_for(self, share: Share) -> Shareholder:
        return self.get_shareholder(share.interested_party_number)

    def add_territory(
        self,
        share: Share,
        tis_code: int,
        indicator: str = "I",
        pr_collection_share: Any = 0,
        mr_collection_share: Any = 0,
        sr_collection_share: Any = 0,
        shares_change: str = "",
        work_id: Optional[str] = None,
    ) -> TerritoryEntry:
        """
        Attach a territory entry to a share.

        Entries with an unknown TIS code or an all-zero include are still
        stored so nothing read from a file is lost; the problem goes on the
        diagnostic log and share validation rejects the work later.

        Raises:
            CatalogError: If the code or indicator is malformed
        """
        try:
            entry = TerritoryEntry(
                tis_code=tis_code,
                indicator=indicator,
                pr_collection_share=pr_collection_share,
                mr_collection_share=mr_collection_share,
                sr_collection_share=sr_collection_share,
                shares_change=shares_change or "",
            )
        except ModelValidationError as e:
            raise CatalogError(f"Invalid territory entry {tis_code}/{indicator}: {e}") from e

        if not self.territories.is_known(entry.tis_code):
            self.diagnostics.warning(
                f"TIS code {entry.tis_code} for party {share.interested_party_number} is not a known territory.",
                code="UNKNOWN_TIS",
                work_id=work_id,
            )
        if entry.is_include and entry.total_collection == 0:
            self.diagnostics.warning(
                f"Territory {entry.tis_code} for party {share.interested_party_number} "
                f"is included with no collection share.",
                code="ZERO_COLLECTION",
                work_id=work_id,
            )
        share.territories.append(entry)
        return entry

    def collection_values(self, share: Share) -> Dict[str, CountryShare]:
        """Country -> collection shares of one share after include/exclude folding."""
        return self.territories.collection_values(share.territories)

    def territory_entries(self, share: Share) -> List[Dict[str, Any]]:
        return self.territories.describe(share.territories)

    def percentage_controlled(self, work: WorkHandle) -> Decimal:
        return percentage_controlled(self._work(work), self)

    # Performers

    @property
    def performers(self) -> List[Performer]:
        return list(self._performers)

    def get_performer(self, index: int) -> Performer:
        try:
            return self._performers[index]
        except IndexError:
            raise CatalogError(f"Performer #{index} not found") from None

    def add_performer(
        self,
        last_name: str,
        first_name: str = "",
        ipi_name_number: Optional[str] = None,
        ipi_base_number: Optional[str] = None,
        work: Optional[WorkHandle] = None,
    ) -> int:
        """
        Register a performer, reusing an existing entry with the same IPI or name.

        Args:
            work: when given, the performer is also referenced from this work

        Returns:
            int: index of the performer in the registry
        """
        if not (last_name or "").strip():
            raise CatalogError("Performer last name is required")

        ipi = IPINameValidator.normalize(ipi_name_number) if IPINameValidator.is_valid(ipi_name_number) else None
        base = IPIBaseValidator.normalize(ipi_base_number) if IPIBaseValidator.is_valid(ipi_base_number) else None
        name_key = (last_name.strip().upper(), (first_name or "").strip().upper())

        index = None
        for position, performer in enumerate(self._performers):
            if ipi and performer.ipi_name_number == ipi:
                index = position
                break
            if (performer.last_name.upper(), performer.first_name.upper()) == name_key:
                index = position
                break

        if index is None:
            self._performers.append(Performer(
                last_name=last_name,
                first_name=first_name or "",
                ipi_name_number=ipi,
                ipi_base_number=base,
            ))
            index = len(self._performers) - 1
        else:
            existing = self._performers[index]
            if ipi and not existing.ipi_name_number:
                existing.ipi_name_number = ipi
            if base and not existing.ipi_base_number:
                existing.ipi_base_number = base

        if work is not None:
            target = self._work(work)
            if index not in target.performer_refs:
                target.performer_refs.append(index)
        return index

    # Work sub-records

    def add_alternate_title(self, work: WorkHandle, title: str, title_type: str = "AT",
                            language_code: str = "") -> Optional[AlternateTitle]:
        target = self._work(work)
        if not (title or "").strip():
            self.diagnostics.warning("Alternate title is empty and was ignored.", code="EMPTY_TITLE", work_id=target.id)
            return None
        alternate = AlternateTitle(title=title, title_type=title_type or "AT", language_code=language_code or "")
        target.alternate_titles.append(alternate)
        return alternate

    def add_origin(self, work: WorkHandle, intended_purpose: str, **fields) -> WorkOrigin:
        target = self._work(work)
        try:
            origin = WorkOrigin(intended_purpose=intended_purpose, **fields)
        except ModelValidationError as e:
            raise CatalogError(f"Invalid work origin for {target.id}: {e}") from e
        target.origins.append(origin)
        return origin

    def add_instrumentation(self, work: WorkHandle, number_of_voices: Optional[int] = None,
                            standard_instrumentation_type: str = "",
                            instrumentation_description: str = "") -> InstrumentationSummary:
        target = self._work(work)
        summary = InstrumentationSummary(
            number_of_voices=number_of_voices,
            standard_instrumentation_type=standard_instrumentation_type or "",
            instrumentation_description=instrumentation_description or "",
        )
        target.instrumentation.append(summary)
        return summary

    def add_instrument_detail(self, work: WorkHandle, instrument_code: str,
                              number_of_players: Optional[int] = None) -> InstrumentDetail:
        target = self._work(work)
        detail = InstrumentDetail(instrument_code=instrument_code, number_of_players=number_of_players)
        target.instrument_details.append(detail)
        return detail

    def set_title_reference(self, work: WorkHandle, record_type: str, title: str,
                            **fields) -> Optional[TitleReference]:
        """
        Set the component (COM), entire work (EWT) or original work (VER) reference.

        A blank title drops the reference with a warning.
        """
        target = self._work(work)
        slot = TITLE_REFERENCE_SLOTS.get(record_type.upper())
        if slot is None:
            raise CatalogError(f"Unknown title reference type {record_type}")
        if not (title or "").strip():
            self.diagnostics.warning(
                f"{record_type.upper()} title is empty; the reference was ignored.",
                code="EMPTY_TITLE",
                work_id=target.id,
                record_type=record_type.upper(),
            )
            return None
        reference = TitleReference(title=title, **fields)
        setattr(target, slot, reference)
        return reference

    def add_additional_info(
        self,
        work: WorkHandle,
        society_code: Optional[int],
        type_of_right: str,
        work_number: str = "",
        subject_code: str = "",
        note: str = "",
    ) -> Optional[AdditionalInfo]:
        """
        Attach an ARI note.

        The note is rejected (with a warning) unless a society is given, the
        type of right is MEC, PER, SYN or ALL, a work number or note is
        present, and a subject code accompanies any note.
        """
        target = self._work(work)
        type_of_right = (type_of_right or "").strip().upper()
        problem = None
        if society_code is None or society_code == "":
            problem = "society code is missing"
        elif type_of_right not in TYPES_OF_RIGHT:
            problem = f"type of right '{type_of_right}' is not one of {sorted(TYPES_OF_RIGHT)}"
        elif not (work_number or "").strip() and not (note or "").strip():
            problem = "neither a work number nor a note is present"
        elif (note or "").strip() and not (subject_code or "").strip():
            problem = "a note requires a subject code"
        if problem:
            self.diagnostics.warning(
                f"Additional information ignored: {problem}.",
                code="INVALID_ARI",
                work_id=target.id,
                record_type="ARI",
            )
            return None

        info = AdditionalInfo(
            society_code=int(society_code),
            work_number=(work_number or "").strip(),
            type_of_right=type_of_right,
            subject_code=(subject_code or "").strip().upper(),
            note=(note or "").strip(),
        )
        target.additional_info.append(info)
        return info

    def add_cross_reference(self, work: WorkHandle, organisation_code: int, identifier: str,
                            identifier_type: str = "W", validity: str = "Y") -> CrossReference:
        """Attach an XRF; an earlier reference from the same organisation is replaced."""
        target = self._work(work)
        try:
            reference = CrossReference(
                organisation_code=organisation_code,
                identifier=identifier,
                identifier_type=(identifier_type or "W").upper(),
                validity=(validity or "Y").upper(),
            )
        except ModelValidationError as e:
            raise CatalogError(f"Invalid cross reference for {target.id}: {e}") from e
        target.cross_references = [
            existing for existing in target.cross_references
            if existing.organisation_code != reference.organisation_code
        ] + [reference]
        return reference

    def add_isrc(self, work: WorkHandle, isrc: str) -> bool:
        """Append an ISRC to the work; invalid or duplicate codes are not added."""
        target = self._work(work)
        code = ISRCValidator.normalize(isrc)
        if not code:
            return False
        if not ISRCValidator.is_valid(code):
            self.diagnostics.warning(f"ISRC '{isrc}' is invalid and was ignored.", code="INVALID_ISRC", work_id=target.id)
            return False
        if code not in target.isrcs:
            target.isrcs.append(code)
        return True

    def set_acknowledgement(self, work: WorkHandle, **fields) -> Acknowledgement:
        target = self._work(work)
        target.acknowledgement = Acknowledgement(**fields)
        return target.acknowledgement

    def add_message(self, work: WorkHandle, **fields) -> SocietyMessage:
        target = self._work(work)
        message = SocietyMessage(**fields)
        target.messages.append(message)
        return message

    # Recordings and releases

    @property
    def tracks(self) -> List[Track]:
        return list(self._tracks.values())

    @property
    def releases(self) -> List[Release]:
        return list(self._releases.values())

    def get_track(self, isrc: str) -> Optional[Track]:
        return self._tracks.get(ISRCValidator.normalize(isrc))

    def get_release(self, upc: str) -> Optional[Release]:
        return self._releases.get("".join(ch for ch in str(upc or "") if ch.isdigit()))

    def add_track(self, isrc: str, **fields) -> Track:
        """Register a recording, merging non-empty fields into an existing one."""
        code = ISRCValidator.normalize(isrc)
        if not code:
            raise CatalogError("Track ISRC is required")
        track = self._tracks.get(code)
        try:
            if track is None:
                track = Track(isrc=code, **fields)
                self._tracks[code] = track
            else:
                for name, value in fields.items():
                    if value not in (None, "", []):
                        setattr(track, name, value)
        except (ModelValidationError, ValueError) as e:
            raise CatalogError(f"Invalid track {isrc}: {e}") from e
        return track

    def add_release(self, upc: str, isrc: Optional[str] = None, **fields) -> Release:
        """Register a release, merging fields, and link it to a track when ``isrc`` is given."""
        key = "".join(ch for ch in str(upc or "") if ch.isdigit())
        if not key:
            raise CatalogError("Release UPC/EAN is required")
        release = self._releases.get(key)
        try:
            if release is None:
                release = Release(upc=key, **fields)
                self._releases[key] = release
            else:
                for name, value in fields.items():
                    if value not in (None, "", []):
                        setattr(release, name, value)
        except (ModelValidationError, ValueError) as e:
            raise CatalogError(f"Invalid release {upc}: {e}") from e

        if isrc:
            track = self.add_track(isrc)
            if track.isrc not in release.tracks:
                release.tracks.append(track.isrc)
            if key not in track.releases:
                track.releases.append(key)
        return release

    def tracks_for_work(self, work: WorkHandle) -> List[Track]:
        """Tracks linked to the work by work id or by one of its ISRCs, in ISRC order of the work."""
        target = self._work(work)
        linked = [self._tracks[isrc] for isrc in target.isrcs if isrc in self._tracks]
        for track in self._tracks.values():
            if track.work_id == target.id and track not in linked:
                linked.append(track)
        return linked
