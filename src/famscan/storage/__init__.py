"""DuckDB evaluation log and JSON scan artifacts."""

from famscan.storage.db import get_connection, init_schema

__all__ = ["get_connection", "init_schema"]
