"""Shared validation utilities"""

import re
from typing import Optional

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

TIME_SLOTS = ("AM", "PM")

DOG_SIZES = ("small", "medium", "large")


def validate_time_of_day(value: str) -> str:
    """
    Validate a 24-hour "HH:MM" time.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid time '{value}'. Expected 24-hour HH:MM format")
    return value.strip()


def validate_time_slot(value: Optional[str]) -> Optional[str]:
    """Normalize a booking slot to "AM" or "PM" """
    if value is None:
        return value
    normalized = value.strip().upper()
    if normalized not in TIME_SLOTS:
        raise ValueError("timeSlot must be 'AM' or 'PM'")
    return normalized


def validate_weekly_availability(availability: Optional[dict]) -> dict:
    """
    Validate and normalize a weekly availability map.

    Args:
        availability: {weekday: [{"start": "HH:MM", "end": "HH:MM"}, ...]}

    Returns:
        Map with every weekday present (lowercase keys) and sorted windows

    Raises:
        ValueError: On unknown weekdays, malformed times or empty windows
    """
    normalized = {day: [] for day in WEEKDAYS}
    if not availability:
        return normalized

    for day, windows in availability.items():
        key = str(day).strip().lower()
        if key not in normalized:
            raise ValueError(f"Unknown weekday '{day}'")

        for window in windows or []:
            start = validate_time_of_day(window.get("start", ""))
            end = validate_time_of_day(window.get("end", ""))
            if end <= start:
                raise ValueError(f"Window {start}-{end} on {key} must end after it starts")
            normalized[key].append({"start": start, "end": end})

        normalized[key].sort(key=lambda w: w["start"])

    return normalized


def validate_dog_sizes(sizes: Optional[list]) -> list:
    if not sizes:
        return []
    cleaned = []
    for size in sizes:
        value = str(size).strip().lower()
        if value not in DOG_SIZES:
            raise ValueError(f"Invalid dog size '{size}'")
        if value not in cleaned:
            cleaned.append(value)
    return cleaned
