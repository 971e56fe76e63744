"""Timestamp and filename helpers for harvest artifacts."""

import re
from datetime import datetime, timezone
from typing import Optional

RESULTS_FILENAME_PREFIX = "fetch-results-"


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """Return an ISO 8601 UTC timestamp with millisecond precision and a ``Z`` suffix.

    Example: ``2024-05-01T12:30:45.123Z``
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def results_filename(moment: Optional[datetime] = None) -> str:
    """Return the timestamped search-import filename.

    ``:`` and ``.`` in the timestamp are replaced by ``-`` so the name is
    safe on every filesystem, e.g. ``fetch-results-2024-05-01T12-30-45-123Z.json``.
    """
    stamp = re.sub(r"[:.]", "-", iso_timestamp(moment))
    return f"{RESULTS_FILENAME_PREFIX}{stamp}.json"
