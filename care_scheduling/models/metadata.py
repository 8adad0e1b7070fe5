"""Shared metadata for all tables."""

from sqlalchemy import MetaData

metadata = MetaData(
    naming_convention={
        "ix": "idx_%(table_name)s_%(column_0_N_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s",
        "pk": "%(table_name)s_pkey",
    }
)
