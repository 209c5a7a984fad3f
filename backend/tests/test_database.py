"""
Tests for database engine configuration.
"""
from app.database import engine_options


def test_sqlite_allows_cross_thread_sessions():
    assert engine_options("sqlite:///./ehs.db") == {"connect_args": {"check_same_thread": False}}


def test_postgres_pings_pooled_connections():
    assert engine_options("postgresql://ehs@localhost:5432/ehs_enforcement") == {"pool_pre_ping": True}
