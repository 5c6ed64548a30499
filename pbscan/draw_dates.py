"""
Draw Date Utilities
===================

Powerball drawing calendar (America/New_York) and recognition of the
printed draw date on a ticket.
"""

import re
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

import pytz
from loguru import logger

MONTHS = {
    'JAN': '01', 'FEB': '02', 'MAR': '03', 'APR': '04',
    'MAY': '05', 'JUN': '06', 'JUL': '07', 'AUG': '08',
    'SEP': '09', 'OCT': '10', 'NOV': '11', 'DEC': '12'
}

_WEEKDAY = r'(?:MON|TUE|WED|THU|FRI|SAT|SUN)'

# (pattern, group order) in priority order; groups are month, day, year
TICKET_DATE_PATTERNS = [
    # "SAT AUG02 25"
    (re.compile(_WEEKDAY + r'\s+([A-Z]{3})(\d{1,2})\s+(\d{2})\b'), 'mdy'),
    # "SATAUG0225"
    (re.compile(_WEEKDAY + r'([A-Z]{3})(\d{2})(\d{2})\b'), 'mdy'),
    # "SAT AUG 02 25"
    (re.compile(_WEEKDAY + r'\s+([A-Z]{3})\s+(\d{1,2})\s+(\d{2,4})\b'), 'mdy'),
    # "AUG 02 2025"
    (re.compile(r'\b([A-Z]{3})\s+(\d{1,2})\s+(\d{4})\b'), 'mdy'),
    # "SEP 13 25"
    (re.compile(r'\b([A-Z]{3})\s+(\d{1,2})\s+(\d{2})\b'), 'mdy'),
    # "08/02/25" or "08/02/2025"
    (re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b'), 'numeric'),
]


class DrawCalendar:
    """
    Powerball drawing schedule.

    Draws happen Monday, Wednesday and Saturday at 10:59 PM Eastern Time.
    """

    POWERBALL_TIMEZONE = pytz.timezone('America/New_York')

    # Monday=0, Wednesday=2, Saturday=5
    DRAWING_DAYS = [0, 2, 5]

    DRAWING_HOUR = 22
    DRAWING_MINUTE = 59

    @classmethod
    def get_current_et_time(cls) -> datetime:
        return datetime.now(pytz.UTC).astimezone(cls.POWERBALL_TIMEZONE)

    @classmethod
    def convert_to_et(cls, dt: Union[datetime, str]) -> datetime:
        """
        Convert a datetime or ISO string to Eastern Time.

        Naive values are assumed to already be Eastern Time.
        """
        if isinstance(dt, str):
            parsed = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        else:
            parsed = dt

        if parsed.tzinfo is None:
            return cls.POWERBALL_TIMEZONE.localize(parsed)
        return parsed.astimezone(cls.POWERBALL_TIMEZONE)

    @classmethod
    def latest_drawing_date(cls, reference_date: Optional[Union[datetime, str]] = None) -> str:
        """
        Most recent drawing date that has already taken place.

        Args:
            reference_date: Reference moment (defaults to now, ET)

        Returns:
            str: Date in YYYY-MM-DD format
        """
        if reference_date is None:
            reference = cls.get_current_et_time()
        else:
            reference = cls.convert_to_et(reference_date)

        drawn_today = (
            reference.hour > cls.DRAWING_HOUR
            or (reference.hour == cls.DRAWING_HOUR and reference.minute >= cls.DRAWING_MINUTE)
        )
        if reference.weekday() in cls.DRAWING_DAYS and drawn_today:
            return reference.strftime('%Y-%m-%d')

        for i in range(1, 8):
            candidate = reference - timedelta(days=i)
            if candidate.weekday() in cls.DRAWING_DAYS:
                logger.debug(f"Latest drawing date from {reference.isoformat()}: {candidate.date()}")
                return candidate.strftime('%Y-%m-%d')

        # unreachable with a non-empty DRAWING_DAYS
        return reference.strftime('%Y-%m-%d')

    @classmethod
    def is_valid_drawing_date(cls, date_str: str) -> bool:
        """
        Checks if a date corresponds to a valid drawing day.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            bool: True if it's a valid drawing day
        """
        try:
            date_obj = datetime.strptime(date_str, '%Y-%m-%d')
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid date format for drawing validation: {date_str} - {e}")
            return False

        is_valid = date_obj.weekday() in cls.DRAWING_DAYS
        if not is_valid:
            logger.debug(f"Not a drawing day: {date_str} ({date_obj.strftime('%A')})")
        return is_valid

    @classmethod
    def validate_date_format(cls, date_str: str) -> bool:
        """Whether a string is a real calendar date in YYYY-MM-DD form."""
        if not isinstance(date_str, str) or len(date_str) != 10:
            return False
        try:
            datetime.strptime(date_str, '%Y-%m-%d')
        except ValueError:
            return False
        return True


def _expand_year(year: str) -> str:
    return f"20{year}" if len(year) == 2 else year


def _to_iso(month: str, day: str, year: str) -> Optional[str]:
    iso = f"{_expand_year(year)}-{month.zfill(2)}-{day.zfill(2)}"
    return iso if DrawCalendar.validate_date_format(iso) else None


def normalize_date(raw: Optional[str]) -> Optional[str]:
    """
    Normalize various ticket date formats to ISO YYYY-MM-DD.

    Supports:
    - 'Sep 13 25' / 'SEP 13 25'
    - 'Oct 13 2025'
    - '10/13/25' or '10/13/2025'
    - '2025-10-13' or ISO timestamps like '2025-10-13T00:00:00.000Z'
    - 'WED AUG 03 25' (weekday prefix)

    Returns ISO date string or None if parsing fails.
    """
    if not raw:
        return None

    s = str(raw).strip()

    iso = re.match(r'^(\d{4})-(\d{1,2})-(\d{1,2})(?:T.*)?$', s)
    if iso:
        year, month, day = iso.groups()
        return _to_iso(month, day, year)

    return extract_draw_date([s])


def extract_draw_date(text_lines: Iterable[str]) -> Optional[str]:
    """
    Extract the draw date printed on a ticket.

    Args:
        text_lines: Text lines from the ticket

    Returns:
        Draw date in YYYY-MM-DD format or None
    """
    lines = [line.upper().strip() for line in text_lines if line and line.strip()]

    for pattern, layout in TICKET_DATE_PATTERNS:
        for line in lines:
            match = pattern.search(line)
            if not match:
                continue

            if layout == 'numeric':
                month, day, year = match.groups()
            else:
                month_name, day, year = match.groups()
                month = MONTHS.get(month_name)
                if month is None:
                    continue

            iso = _to_iso(month, day, year)
            if iso:
                logger.debug(f"Extracted draw date {iso} from '{line}'")
                return iso

    logger.debug("No draw date found in ticket text")
    return None


def get_current_et_time() -> datetime:
    return DrawCalendar.get_current_et_time()


def latest_drawing_date(reference_date: Optional[Union[datetime, str]] = None) -> str:
    return DrawCalendar.latest_drawing_date(reference_date)


def is_valid_drawing_date(date_str: str) -> bool:
    return DrawCalendar.is_valid_drawing_date(date_str)


def validate_date_format(date_str: str) -> bool:
    return DrawCalendar.validate_date_format(date_str)
