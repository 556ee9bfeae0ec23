"""
Timestamp helpers.

Documents store instants as ISO-8601 strings in UTC with millisecond
precision and a trailing "Z".
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_timestamp(moment: datetime = None) -> str:
    moment = moment or utc_now()
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
