"""Business rules for CWR work registrations.

``WorkRules`` normalizes a work and checks its work-level data;
``ShareRules`` checks ownership, collection and role composition. Both
return result objects and never raise for data problems. The assembler
runs both before emitting a transaction and skips works that fail.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from cwr_registry.core.diagnostics import DiagnosticLog
from cwr_registry.core.settings import Settings
from cwr_registry.core.vocabulary import (
    DEFAULT_DISTRIBUTION_CATEGORY,
    DEFAULT_GRAND_RIGHTS_INDICATOR,
    DEFAULT_RECORDED_INDICATOR,
    DEFAULT_VERSION_TYPE,
    FILM_TV_WORK_TYPE,
    INTENDED_PURPOSES,
    LANGUAGE_TITLE_TYPES,
    ORIGINAL_VERSION_TYPE,
    TEXT_MUSIC_RELATIONSHIPS,
    TITLE_TYPES,
    RoleClass,
    TransactionType,
)
from cwr_registry.models import Work
from cwr_registry.utils.validators import (
    IPINameValidator,
    ISRCValidator,
    ISWCValidator,
    ValidationError,
    ValidationResult,
)

logger = logging.getLogger(__name__)

RIGHTS = ("pr", "mr", "sr")
HUNDRED = Decimal("100")


@dataclass
class ShareValidationResult(ValidationResult):
    """Share validation outcome with the totals computed along the way."""
    ownership_totals: Dict[str, Decimal] = field(default_factory=dict)
    collection_totals: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    role_counts: Dict[str, int] = field(default_factory=dict)


def percentage_controlled(work: Work, catalog) -> Decimal:
    """Sum of the performing ownership held by controlled shareholders."""
    total = Decimal("0.00")
    for share in work.shares:
        if catalog.has_shareholder(share.interested_party_number) and \
                catalog.get_shareholder(share.interested_party_number).controlled:
            total += share.pr_ownership_share
    return total


class WorkRules:
    """Work-level normalization and validation."""

    @staticmethod
    def validate_work(work: Work, catalog, settings: Optional[Settings] = None,
                      diagnostics: Optional[DiagnosticLog] = None) -> ValidationResult:
        """
        Normalize a work in place and validate its work-level data.

        Defaultable fields are filled, duplicate performer references and
        cross-references are removed, tracks are cross-linked and the
        transaction type is settled (NWR, or REV when a cross-reference
        belongs to the receiving society).

        Args:
            work: the work to check
            catalog: the catalog holding the work's tracks
            settings: configuration; defaults to the catalog's
            diagnostics: log for non-fatal normalizations; defaults to the catalog's

        Returns:
            ValidationResult: invalid when the work must not be transmitted
        """
        settings = settings or catalog.settings
        log = diagnostics if diagnostics is not None else catalog.diagnostics
        errors: List[ValidationError] = []

        if not work.title.strip():
            errors.append(ValidationError(
                field="title",
                code="TITLE_REQUIRED",
                message=f"Work {work.id} has no title"
            ))

        # Defaults
        if not work.recorded_indicator:
            work.recorded_indicator = DEFAULT_RECORDED_INDICATOR
        if not work.version_type:
            work.version_type = DEFAULT_VERSION_TYPE
        if not work.distribution_category:
            work.distribution_category = DEFAULT_DISTRIBUTION_CATEGORY
        if not work.grand_rights_indicator:
            work.grand_rights_indicator = DEFAULT_GRAND_RIGHTS_INDICATOR

        work.performer_refs = list(dict.fromkeys(work.performer_refs))

        for i, alternate in enumerate(work.alternate_titles):
            if alternate.title_type not in TITLE_TYPES:
                errors.append(ValidationError(
                    field=f"alternate_titles[{i}].title_type",
                    code="INVALID_TITLE_TYPE",
                    message=f"Alternate title type '{alternate.title_type}' is not recognised",
                    details={"title": alternate.title}
                ))
            elif alternate.title_type in LANGUAGE_TITLE_TYPES and not alternate.language_code:
                errors.append(ValidationError(
                    field=f"alternate_titles[{i}].language_code",
                    code="LANGUAGE_REQUIRED",
                    message=f"Alternate title type '{alternate.title_type}' requires a language code",
                    details={"title": alternate.title}
                ))

        if work.text_music_relationship not in TEXT_MUSIC_RELATIONSHIPS:
            log.notice(
                f"Text-music relationship '{work.text_music_relationship}' is not recognised and was removed.",
                code="INVALID_TMR",
                work_id=work.id,
            )
            work.text_music_relationship = ""

        # Tracks registered against this work contribute their ISRCs
        for track in catalog.tracks:
            linked = track.work_id == work.id or (work.iswc and track.iswc == work.iswc)
            if not linked:
                continue
            if track.isrc not in work.isrcs:
                work.isrcs.append(track.isrc)
            if not track.iswc and work.iswc:
                track.iswc = work.iswc

        valid_isrcs = []
        for isrc in work.isrcs:
            if ISRCValidator.is_valid(isrc):
                if ISRCValidator.normalize(isrc) not in valid_isrcs:
                    valid_isrcs.append(ISRCValidator.normalize(isrc))
            elif isrc:
                log.warning(f"ISRC '{isrc}' is invalid and was removed.", code="INVALID_ISRC", work_id=work.id)
        work.isrcs = valid_isrcs

        for i, origin in enumerate(work.origins):
            if origin.intended_purpose not in INTENDED_PURPOSES:
                errors.append(ValidationError(
                    field=f"origins[{i}].intended_purpose",
                    code="INVALID_INTENDED_PURPOSE",
                    message=f"Intended purpose '{origin.intended_purpose}' is not recognised"
                ))
            elif origin.intended_purpose == "LIB" and not origin.cd_identifier:
                errors.append(ValidationError(
                    field=f"origins[{i}].cd_identifier",
                    code="CD_IDENTIFIER_REQUIRED",
                    message="Library works require a CD identifier"
                ))

        if work.work_type == FILM_TV_WORK_TYPE:
            if not work.work_origin or not work.work_origin.production_title:
                errors.append(ValidationError(
                    field="origins",
                    code="PRODUCTION_TITLE_REQUIRED",
                    message="Film/TV works require a production title"
                ))

        if work.iswc and not ISWCValidator.is_valid(work.iswc):
            log.warning(f"ISWC '{work.iswc}' failed the checksum and was removed.", code="INVALID_ISWC", work_id=work.id)
            work.iswc = ""

        latest = {}
        for reference in work.cross_references:
            latest.pop(reference.organisation_code, None)
            latest[reference.organisation_code] = reference
        work.cross_references = list(latest.values())

        flags = TransactionType(work.transaction_type)
        if not flags & ~TransactionType.ACK:
            flags |= TransactionType.NWR
        if flags & TransactionType.NWR and WorkRules.is_revision(work, settings):
            flags = (flags & ~TransactionType.NWR) | TransactionType.REV
        if work.acknowledgement is not None:
            flags |= TransactionType.ACK
        work.transaction_type = int(flags)

        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    @staticmethod
    def is_revision(work: Work, settings: Settings) -> bool:
        """Whether the receiving society already holds this work (one of its codes is cross-referenced)."""
        receiver = settings.receiver_society
        if not receiver:
            return False
        societies = {receiver, *settings.revision_society_aliases.get(receiver, [])}
        return any(reference.organisation_code in societies for reference in work.cross_references)


class ShareRules:
    """Ownership, collection and role composition rules."""

    @staticmethod
    def validate_shares(work: Work, catalog, settings: Optional[Settings] = None) -> ShareValidationResult:
        """
        Validate the shares of a work.

        Checks run in order and stop at the first violation: party and role
        validity, controlled writer IPIs, include-territory collection rules,
        per-country collection ceilings, ownership totals and role counts.

        Args:
            work: the work whose shares are checked
            catalog: provides shareholders, the identity resolver and the territory resolver
            settings: tolerances; defaults to the catalog's

        Returns:
            ShareValidationResult: outcome plus ownership totals, per-country
            collection totals and role counts
        """
        settings = settings or catalog.settings
        ownership = {right: Decimal("0.00") for right in RIGHTS}
        collection: Dict[str, Dict[str, Decimal]] = {}
        roles: Counter = Counter()
        controlled_writers = 0

        def fail(field_name: str, code: str, message: str, **details) -> ShareValidationResult:
            logger.info(f"Work {work.id} rejected: {message}")
            return ShareValidationResult(
                is_valid=False,
                errors=[ValidationError(field=field_name, code=code, message=message, details=details or None)],
                ownership_totals=ownership,
                collection_totals=collection,
                role_counts=dict(roles),
            )

        for i, share in enumerate(work.shares):
            prefix = f"shares[{i}]"
            if not catalog.has_shareholder(share.interested_party_number):
                return fail(f"{prefix}.interested_party_number", "UNKNOWN_SHAREHOLDER",
                            f"Shareholder {share.interested_party_number} is not registered")
            shareholder = catalog.get_shareholder(share.interested_party_number)

            role_class = share.role_class
            if role_class is None:
                return fail(f"{prefix}.role", "INVALID_ROLE",
                            f"Role '{share.role}' of {shareholder.display_name} is not a valid CWR role")

            if role_class in (RoleClass.WRITER, RoleClass.ARRANGER) and shareholder.controlled:
                ipi = shareholder.ipi_name_number or shareholder.interested_party_number
                if not IPINameValidator.is_valid(ipi) or not catalog.identity.ipi_exists(ipi):
                    return fail(f"{prefix}.ipi_name_number", "INVALID_IPI",
                                f"Controlled writer {shareholder.display_name} has no valid IPI Name Number",
                                ipi=ipi)
                if role_class == RoleClass.WRITER:
                    controlled_writers += 1

            if role_class != RoleClass.INCOME_PARTICIPANT:
                roles[role_class.value] += 1
            for right in RIGHTS:
                ownership[right] += getattr(share, f"{right}_ownership_share")

            publishing = role_class in (RoleClass.PUBLISHER, RoleClass.SUB_PUBLISHER)
            for j, entry in enumerate(share.territories):
                if not entry.is_include:
                    continue
                if entry.total_collection == 0:
                    return fail(f"{prefix}.territories[{j}]", "ZERO_COLLECTION",
                                f"Territory {entry.tis_code} of {shareholder.display_name} "
                                f"is included with no collection share")
                if publishing:
                    if entry.pr_collection_share > settings.publisher_pr_collection_ceiling:
                        return fail(f"{prefix}.territories[{j}].pr_collection_share", "PUBLISHER_PR_COLLECTION",
                                    f"Publisher {shareholder.display_name} collects "
                                    f"{entry.pr_collection_share}% performing rights in territory "
                                    f"{entry.tis_code} (maximum {settings.publisher_pr_collection_ceiling}%)")
                    for right in ("mr", "sr"):
                        value = getattr(entry, f"{right}_collection_share")
                        if value > settings.collection_ceiling:
                            return fail(f"{prefix}.territories[{j}].{right}_collection_share",
                                        "COLLECTION_EXCEEDED",
                                        f"Publisher {shareholder.display_name} collects {value}% "
                                        f"{right.upper()} in territory {entry.tis_code}")

            for iso, country in catalog.territories.collection_values(share.territories).items():
                totals = collection.setdefault(iso, {right: Decimal("0.00") for right in RIGHTS})
                for right in RIGHTS:
                    totals[right] += getattr(country, f"{right}_collection_share")

        for iso, totals in collection.items():
            for right in RIGHTS:
                if totals[right] > settings.collection_ceiling:
                    return fail("shares", "COLLECTION_EXCEEDED",
                                f"Total {right.upper()} collection in {iso} is {totals[right]}% "
                                f"(maximum {settings.collection_ceiling}%)",
                                country=iso)

        for right in RIGHTS:
            total = ownership[right]
            if total != 0 and abs(total - HUNDRED) > settings.ownership_tolerance:
                return fail("shares", "OWNERSHIP_TOTAL",
                            f"{right.upper()} ownership shares total {total}% (must be 0% or 100%)",
                            right=right, total=str(total))

        if roles[RoleClass.WRITER.value] < 1:
            return fail("shares", "NO_WRITERS", "Work must have at least one writer")
        if controlled_writers < 1:
            return fail("shares", "NO_CONTROLLED_WRITER", "Work must have at least one controlled writer")
        if roles[RoleClass.ARRANGER.value] and work.version_type == ORIGINAL_VERSION_TYPE:
            return fail("shares", "ARRANGER_ON_ORIGINAL",
                        "Arrangers are not allowed on an original work (version type ORI)")

        return ShareValidationResult(
            is_valid=True,
            errors=[],
            ownership_totals=ownership,
            collection_totals=collection,
            role_counts=dict(roles),
        )
