from datetime import datetime

import pytz

from settings import TZ


def get_current_time_in_timezone(timezone_str: str = TZ) -> datetime:
    """Get Current Time in Specified Timezone

    Args:
        timezone_str (str): Timezone string (e.g., "Asia/Jerusalem")

    Returns:
        datetime: Current datetime in the specified timezone, UTC when the
        name is unknown
    """
    try:
        tz = pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError:
        tz = pytz.utc
    return datetime.now(tz)
