"""Key/value application settings table."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Setting(SQLModel, table=True):
    """An application setting stored as an opaque string (usually JSON).

    The calendar configuration collection lives here under the
    ``calendars`` key as a JSON array.
    """
    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
