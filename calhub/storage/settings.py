"""Settings repository and the persisted calendar configuration collection."""

import json
import logging
from datetime import UTC, datetime

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from calhub.core.database import Database
from calhub.core.errors import ConfigError, ConfigErrorKind, DatabaseError, DatabaseErrorKind
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.models import CalendarConfig, Setting

logger = logging.getLogger(__name__)

CALENDARS_SETTING_KEY = "calendars"

_calendar_list = TypeAdapter(list[CalendarConfig])


class SettingsRepository:
    """Get/set of opaque string values by key."""

    def __init__(self, database: Database):
        self._database = database

    def get_setting(self, key: str) -> Result[Option[str], DatabaseError]:
        try:
            with self._database.session() as session:
                row = session.get(Setting, key)
                return Ok(Some(row.value) if row else NOTHING)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read setting {key}: {e}")
            return Err(DatabaseError(DatabaseErrorKind.QUERY_FAILED, f"Failed to read setting {key}", e))

    def set_setting(self, key: str, value: str) -> Result[None, DatabaseError]:
        try:
            with self._database.session() as session:
                row = session.get(Setting, key)
                if row:
                    row.value = value
                    row.updated_at = datetime.now(UTC)
                else:
                    row = Setting(key=key, value=value)
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write setting {key}: {e}")
            return Err(DatabaseError(DatabaseErrorKind.QUERY_FAILED, f"Failed to write setting {key}", e))
        return Ok(None)


class CalendarConfigStore:
    """The ``calendars`` setting: a JSON array of CalendarConfig objects.

    A missing setting reads as an empty list. Malformed JSON or entries that
    do not validate are reported as errors rather than silently dropped.
    """

    def __init__(self, settings_repository: SettingsRepository):
        self._settings = settings_repository

    def load(self) -> Result[list[CalendarConfig], ConfigError]:
        match self._settings.get_setting(CALENDARS_SETTING_KEY):
            case Err(error):
                return Err(ConfigError(ConfigErrorKind.READ_FAILED, error.message, error))
            case Ok(Some(raw)):
                pass
            case _:
                return Ok([])

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Calendar configuration is not valid JSON: {e}")
            return Err(ConfigError(ConfigErrorKind.PARSE_ERROR, "Calendar configuration is not valid JSON", e))

        try:
            return Ok(_calendar_list.validate_python(data))
        except ValidationError as e:
            logger.error(f"Calendar configuration is invalid: {e}")
            return Err(ConfigError(ConfigErrorKind.VALIDATION_ERROR, "Calendar configuration is invalid", e))

    def save(self, calendars: list[CalendarConfig]) -> Result[None, ConfigError]:
        """Replace the whole collection in a single write."""
        payload = _calendar_list.dump_json(calendars, by_alias=True, exclude_none=True).decode("utf-8")
        match self._settings.set_setting(CALENDARS_SETTING_KEY, payload):
            case Err(error):
                return Err(ConfigError(ConfigErrorKind.WRITE_FAILED, error.message, error))
        return Ok(None)

    def find(self, calendar_id: str) -> Result[Option[CalendarConfig], ConfigError]:
        match self.load():
            case Ok(calendars):
                return Ok(next((Some(c) for c in calendars if c.id == calendar_id), NOTHING))
            case Err() as failure:
                return failure
