"""
Runtime overrides stored in system_configs

Values set here win over environment settings. Secret values are stored
Fernet-encrypted and only ever returned masked through the admin API.
"""
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from doctor_helper.config import get_settings
from doctor_helper.core.security import encrypt_secret, decrypt_secret, mask_secret
from doctor_helper.models.system_config import SystemConfig
import logging

settings = get_settings()
logger = logging.getLogger(__name__)

METERING_FAIL_OPEN = "metering_fail_open"
GENERATION_API_KEY = "generation_api_key"

SECRET_KEYS = {GENERATION_API_KEY}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


async def get_config_value(db: AsyncSession, key: str) -> Optional[str]:
    """Plain-text value of a config key, or None if unset"""
    result = await db.execute(select(SystemConfig).where(SystemConfig.key == key))
    config = result.scalar_one_or_none()
    if not config:
        return None
    if config.is_secret:
        return decrypt_secret(config.value)
    return config.value


async def set_config_value(
    db: AsyncSession,
    key: str,
    value: str,
    description: Optional[str] = None,
) -> SystemConfig:
    is_secret = key in SECRET_KEYS
    stored = encrypt_secret(value) if is_secret else value

    result = await db.execute(select(SystemConfig).where(SystemConfig.key == key))
    config = result.scalar_one_or_none()

    if not config:
        config = SystemConfig(key=key, value=stored, description=description, is_secret=is_secret)
        db.add(config)
    else:
        config.value = stored
        config.is_secret = is_secret
        if description is not None:
            config.description = description

    await db.commit()
    logger.info(f"System config '{key}' updated")
    return config


async def list_configs(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(SystemConfig).order_by(SystemConfig.key))
    return [
        {
            "key": config.key,
            "value": mask_secret(config.value) if config.is_secret else config.value,
            "description": config.description,
            "is_secret": config.is_secret,
            "updated_at": config.updated_at.isoformat() if config.updated_at else None,
        }
        for config in result.scalars().all()
    ]


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean value: {value!r}")


async def get_metering_fail_open(db: AsyncSession) -> bool:
    """Effective fail-open policy: DB override, else METERING_FAIL_OPEN"""
    try:
        value = await get_config_value(db, METERING_FAIL_OPEN)
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("Could not read metering policy override, using environment setting", exc_info=True)
        return settings.METERING_FAIL_OPEN

    if value is None:
        return settings.METERING_FAIL_OPEN
    try:
        return parse_bool(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {METERING_FAIL_OPEN} override: {value!r}")
        return settings.METERING_FAIL_OPEN


async def get_generation_api_key(db: AsyncSession) -> str:
    try:
        value = await get_config_value(db, GENERATION_API_KEY)
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("Could not read generation API key override", exc_info=True)
        value = None
    return value or settings.GENERATION_API_KEY
