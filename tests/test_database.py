import pytest

from doctor_helper.database import convert_database_url


def test_sqlite_urls():
    assert convert_database_url("sqlite+aiosqlite:///./app.db") == "sqlite+aiosqlite:///./app.db"
    assert convert_database_url("sqlite:///./app.db") == "sqlite+aiosqlite:///./app.db"


def test_postgres_urls_use_asyncpg():
    assert convert_database_url("postgres://u:p@db/app") == "postgresql+asyncpg://u:p@db/app"
    assert convert_database_url("postgresql://u:p@db/app") == "postgresql+asyncpg://u:p@db/app"


def test_unsupported_asyncpg_parameters_are_dropped():
    url = convert_database_url(
        "postgresql://u:p@db/app?sslmode=require&channel_binding=require&connect_timeout=10"
    )
    assert url == "postgresql+asyncpg://u:p@db/app?ssl=require"


def test_sslmode_disable_is_dropped():
    assert convert_database_url("postgresql://u:p@db/app?sslmode=disable") == "postgresql+asyncpg://u:p@db/app"


def test_invalid_urls():
    with pytest.raises(ValueError):
        convert_database_url("")
    with pytest.raises(ValueError):
        convert_database_url("mysql://u:p@db/app")
