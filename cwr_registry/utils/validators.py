"""Identifier checksum validators (IPI, ISWC, ISRC, EAN/UPC)."""

import re
from typing import List, Optional, Dict, Any
from dataclasses import dataclass

from cwr_registry.core.tis_data import iso_country_codes
from cwr_registry.core.vocabulary import ISRC_EXTRA_COUNTRY_CODES


@dataclass
class ValidationError:
    """Validation error details."""
    field: str
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


@dataclass
class ValidationResult:
    """Result of validation operation."""
    is_valid: bool
    errors: List[ValidationError]


def _digits(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"[^0-9]", "", str(value))


class IPINameValidator:
    """Validator for IPI Name Numbers (11 digits, modulo-101 check)."""

    @staticmethod
    def check_digits(nine_digits: str) -> str:
        """Return the two check digits for the first nine digits of an IPI Name Number."""
        if len(nine_digits) != 9 or not nine_digits.isdigit():
            raise ValueError(f"IPI Name base must be nine digits, got {nine_digits!r}")

        total = sum(int(digit) * weight for digit, weight in zip(nine_digits, range(10, 1, -1)))
        check = total % 101
        if check == 1:
            check = 0
        elif check != 0:
            check = 101 - check
        return f"{check:02d}"

    @classmethod
    def normalize(cls, value: Any) -> str:
        """Zero-pad to 11 digits, or return '' when empty."""
        digits = _digits(value)
        if not digits or int(digits) == 0 or len(digits) > 11:
            return ""
        return digits.zfill(11)

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """Check an IPI Name Number against its modulo-101 check digits."""
        number = cls.normalize(value)
        if not number:
            return False
        return cls.check_digits(number[:9]) == number[9:]

    @classmethod
    def validate(cls, value: Any, field: str = "ipi_name_number") -> List[ValidationError]:
        errors = []
        if value in (None, "", 0):
            return errors
        if not cls.is_valid(value):
            errors.append(ValidationError(
                field=field,
                code="INVALID_IPI_NAME",
                message="IPI Name Number failed the modulo-101 check",
                details={"provided": value}
            ))
        return errors


class IPIBaseValidator:
    """Validator for IPI Base Numbers (I-#########-#)."""

    IPI_BASE_PATTERN = re.compile(r"^I-[0-9]{9}-[0-9]$")

    @staticmethod
    def check_digit(nine_digits: str) -> int:
        total = 2
        for position, digit in enumerate(nine_digits, start=1):
            total += position * int(digit)
        return (10 - total % 10) % 10

    @classmethod
    def normalize(cls, value: Any) -> str:
        """Canonical ``I-#########-#`` form, or '' when it cannot be formed."""
        if not value:
            return ""
        text = str(value).strip().upper()
        digits = _digits(text)
        if len(digits) != 10:
            return ""
        return f"I-{digits[:9]}-{digits[9]}"

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        number = cls.normalize(value)
        if not number or not cls.IPI_BASE_PATTERN.match(number):
            return False
        return cls.check_digit(number[2:11]) == int(number[12])

    @classmethod
    def validate(cls, value: Any, field: str = "ipi_base_number") -> List[ValidationError]:
        errors = []
        if not value:
            return errors
        if not cls.is_valid(value):
            errors.append(ValidationError(
                field=field,
                code="INVALID_IPI_BASE",
                message="IPI Base Number must be in format I-#########-# with a valid check digit",
                details={"provided": value, "expected_format": "I-#########-#"}
            ))
        return errors


class ISWCValidator:
    """Validator for International Standard Musical Work Code (ISWC)."""

    ISWC_PATTERN = re.compile(r"^T[0-9]{10}$")

    @classmethod
    def normalize(cls, iswc: Any) -> str:
        """Strip dots, dashes and spaces: ``T-034.524.680-1`` becomes ``T0345246801``."""
        if not iswc:
            return ""
        return re.sub(r"[\s.\-]", "", str(iswc)).upper()

    @classmethod
    def is_valid_format(cls, iswc: str) -> bool:
        """Check if ISWC has valid format."""
        if not iswc:
            return False
        return bool(cls.ISWC_PATTERN.match(cls.normalize(iswc)))

    @staticmethod
    def check_digit(nine_digits: str) -> int:
        total = 1
        for position, digit in enumerate(nine_digits, start=1):
            total += position * int(digit)
        return (10 - total % 10) % 10

    @classmethod
    def is_valid(cls, iswc: Any) -> bool:
        if not cls.is_valid_format(iswc):
            return False
        number = cls.normalize(iswc)
        return cls.check_digit(number[1:10]) == int(number[10])

    @classmethod
    def validate(cls, iswc: Optional[str]) -> List[ValidationError]:
        """Validate ISWC format and checksum."""
        errors = []

        if not iswc:
            return errors

        if not cls.is_valid_format(iswc):
            errors.append(ValidationError(
                field="iswc",
                code="INVALID_ISWC_FORMAT",
                message="ISWC must be in format T-XXXXXXXXX-X",
                details={"provided": iswc, "expected_format": "T-XXXXXXXXX-X"}
            ))
            return errors

        if not cls.is_valid(iswc):
            errors.append(ValidationError(
                field="iswc",
                code="INVALID_ISWC_CHECKSUM",
                message="ISWC checksum is invalid",
                details={"provided": iswc}
            ))

        return errors


class ISRCValidator:
    """Validator for International Standard Recording Code (ISRC)."""

    ISRC_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{3}[0-9]{7}$")

    @classmethod
    def normalize(cls, isrc: Any) -> str:
        """Upper-case and strip an ``ISRC`` prefix, dashes and spaces."""
        if not isrc:
            return ""
        text = str(isrc).upper().replace("ISRC", "")
        return re.sub(r"[\s\-]", "", text)

    @classmethod
    def is_valid(cls, isrc: Any) -> bool:
        """ISRC format plus a known registrant country."""
        number = cls.normalize(isrc)
        if not cls.ISRC_PATTERN.match(number):
            return False
        country = number[:2]
        return country in iso_country_codes() or country in ISRC_EXTRA_COUNTRY_CODES

    @classmethod
    def validate(cls, isrc: Optional[str]) -> List[ValidationError]:
        """Validate ISRC format."""
        errors = []

        if not isrc:
            return errors

        number = cls.normalize(isrc)
        if not cls.ISRC_PATTERN.match(number):
            errors.append(ValidationError(
                field="isrc",
                code="INVALID_ISRC_FORMAT",
                message="ISRC must be 12 characters: CC-XXX-YY-NNNNN",
                details={"provided": isrc, "expected_format": "CC-XXX-YY-NNNNN"}
            ))
        elif not cls.is_valid(number):
            errors.append(ValidationError(
                field="isrc",
                code="INVALID_ISRC_COUNTRY",
                message="ISRC country code is not recognized",
                details={"provided": isrc, "country": number[:2]}
            ))

        return errors


class EANValidator:
    """Validator for EAN-13 and UPC-A product codes."""

    @classmethod
    def normalize(cls, code: Any) -> str:
        """Digits only; a 12-digit UPC becomes a 13-digit EAN with a leading zero."""
        digits = _digits(code)
        if len(digits) == 12:
            digits = "0" + digits
        return digits

    @staticmethod
    def check_digit(body: str) -> int:
        """Check digit for the first 12 digits of an EAN-13."""
        total = 0
        for position, digit in enumerate(body, start=1):
            total += int(digit) * (3 if position % 2 == 0 else 1)
        return (10 - total % 10) % 10

    @classmethod
    def is_valid(cls, code: Any) -> bool:
        digits = cls.normalize(code)
        if len(digits) != 13 or int(digits) == 0:
            return False
        return cls.check_digit(digits[:12]) == int(digits[12])

    @classmethod
    def validate(cls, code: Any, field: str = "ean") -> List[ValidationError]:
        errors = []
        if not code:
            return errors
        if not cls.is_valid(code):
            errors.append(ValidationError(
                field=field,
                code="INVALID_EAN",
                message="EAN/UPC check digit is invalid",
                details={"provided": code}
            ))
        return errors
