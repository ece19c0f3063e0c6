import asyncio
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_doctor_helper.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-doctor-helper-tests"
os.environ["GENERATION_API_KEY"] = "test-key"
os.environ["METERING_FAIL_OPEN"] = "true"

import pytest  # noqa: E402

from doctor_helper.database import drop_db, init_db  # noqa: E402
from doctor_helper.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    asyncio.run(drop_db())
    asyncio.run(init_db())
    yield
    app.dependency_overrides.clear()
