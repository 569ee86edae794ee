"""CWR transmission file naming."""

from datetime import date
from typing import Optional, Union

from cwr_registry.core.vocabulary import CwrVersion


def cwr_filename(
    submitter_code: str,
    receiver_society: int,
    sequence: int,
    version: Union[CwrVersion, str] = CwrVersion.V21,
    today: Optional[date] = None,
) -> str:
    """
    Build the standard transmission filename ``CWyynnnnsss_rrr.Vxx``.

    Args:
        submitter_code: sender's CWR submitter code (2-3 characters)
        receiver_society: receiving society code
        sequence: file sequence number for the year (1-9999)
        version: CWR version, rendered as two digits (2.1 -> 21)
        today: date supplying the year; defaults to today

    Returns:
        str: e.g. ``CW240001ACM_021.V21``
    """
    if not 0 <= int(sequence) <= 9999:
        raise ValueError(f"File sequence must be between 0 and 9999 (got {sequence})")
    cwr_version = CwrVersion.parse(version)
    year = (today or date.today()).year % 100
    major, minor = cwr_version.number
    return (
        f"CW{year:02d}{int(sequence):04d}{submitter_code.strip().upper()}"
        f"_{int(receiver_society or 0):03d}.V{major}{minor}"
    )
