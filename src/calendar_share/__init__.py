"""Link-based sharing service for content calendars."""

from .main import create_app
from .settings import CalendarShareSettings

__all__ = ["create_app", "CalendarShareSettings"]
