"""Applied schema migrations."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class SchemaMigration(SQLModel, table=True):
    __tablename__ = "schema_migrations"

    id: int = Field(primary_key=True)
    name: str = Field(unique=True)
    executed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
