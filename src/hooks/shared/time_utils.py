from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[datetime, str, int, float]


def to_utc_datetime(value: Optional[Timestamp]) -> Optional[datetime]:
    """
    GitHub payload / MongoDB 값을 aware UTC datetime으로 정규화

    - datetime: naive면 UTC로 간주 (motor 기본값이 naive UTC)
    - str: ISO 8601 ("2024-01-15", "2024-01-15T10:00:00Z")
    - int/float: unix timestamp (초)
    """
    if value is None:
        return None

    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
        return to_utc_datetime(parsed)

    raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")


def is_earlier(candidate: Optional[Timestamp], reference: Optional[Timestamp]) -> bool:
    """candidate < reference (둘 중 하나라도 없으면 False)"""
    candidate_dt = to_utc_datetime(candidate)
    reference_dt = to_utc_datetime(reference)
    if candidate_dt is None or reference_dt is None:
        return False

    return candidate_dt < reference_dt
