from datetime import datetime, date, timedelta

import pytz

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

class Clock:
    """Источник текущего времени в заданной временной зоне"""

    def __init__(self, timezone: str = "UTC"):
        self.tz = pytz.timezone(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, dt: datetime) -> datetime:
        """Привести метку времени к зоне часов"""
        if dt.tzinfo is None:
            return self.tz.localize(dt)
        return dt.astimezone(self.tz)

def day_key(day: date) -> str:
    """Календарный день в виде 'Mon Jan 01 2024'"""
    return f"{WEEKDAY_NAMES[day.weekday()]} {MONTH_NAMES[day.month - 1]} {day.day:02d} {day.year}"

def previous_day(day: date) -> date:
    return day - timedelta(days=1)

def day_of_week(dt: datetime) -> int:
    # 0 - воскресенье
    return dt.isoweekday() % 7
