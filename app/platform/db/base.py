import sqlalchemy
from sqlalchemy import Column, MetaData, String
from sqlalchemy.orm import declarative_base
from uuid_extension import uuid7

# Deterministic names so SQLite and PostgreSQL schemas match
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


class BaseModel(Base):
    """uuid7 string primary key plus server-side audit timestamps."""
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=lambda: str(uuid7()))
    created_at = Column(
        sqlalchemy.DateTime(timezone=True), server_default=sqlalchemy.func.now(), nullable=False
    )
    updated_at = Column(
        sqlalchemy.DateTime(timezone=True),
        server_default=sqlalchemy.func.now(),
        onupdate=sqlalchemy.func.now(),
        nullable=False,
    )

# Models import Base from here; init_models() imports the models before create_all.
