# backend/portfolio_aggregator/services/portfolio/connections.py
"""
Platform connection workflow.

Records that a user linked an external account. No call is made to the
platform itself; credentials are stored as given for a future sync job.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_aggregator.models import Platform, PlatformName, PlatformStatus, PlatformType
from portfolio_aggregator.services.constants import (
    BROKER_PLATFORMS,
    CREDENTIAL_FIELDS,
    CREDENTIAL_FREE_PLATFORMS,
    EXCHANGE_PLATFORMS,
    SUPPORTED_PLATFORMS,
)
from portfolio_aggregator.services.exceptions import (
    MissingCredentialsError,
    PlatformAlreadyConnectedError,
    UnsupportedPlatformError,
)
from portfolio_aggregator.services.portfolio.types import ConnectionResult

logger = logging.getLogger(__name__)


def platform_type_for(name: str) -> PlatformType:
    if name in BROKER_PLATFORMS:
        return PlatformType.BROKER
    if name in EXCHANGE_PLATFORMS:
        return PlatformType.EXCHANGE
    return PlatformType.MANUAL


class PlatformConnectionService:
    """Validates and records new platform connections."""

    def connect_platform(
        self,
        db: Session,
        user_id: int,
        platform: str,
        credentials: Mapping[str, Any] | None = None,
    ) -> ConnectionResult:
        """
        Connect a platform for a user.

        Args:
            db: Database session
            user_id: Owner of the new connection
            platform: Platform name, case-insensitive
            credentials: API credentials (apiKey, apiSecret, accessToken);
                required for every platform except "manual"

        Raises:
            UnsupportedPlatformError: Name not in SUPPORTED_PLATFORMS
            PlatformAlreadyConnectedError: User already connected this platform
            MissingCredentialsError: Credentials absent or empty
        """
        name = platform.strip().lower()
        if name not in SUPPORTED_PLATFORMS:
            raise UnsupportedPlatformError(platform)

        existing = db.execute(
            select(Platform.id).where(
                Platform.user_id == user_id,
                Platform.name == PlatformName(name),
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise PlatformAlreadyConnectedError(name)

        if name not in CREDENTIAL_FREE_PLATFORMS and not credentials:
            raise MissingCredentialsError(name)

        record = Platform(
            user_id=user_id,
            name=PlatformName(name),
            type=platform_type_for(name),
            status=PlatformStatus.CONNECTED,
            balance=Decimal("0"),
            last_sync=datetime.now(timezone.utc),
            **self._credential_columns(credentials or {}),
        )
        db.add(record)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent connect for the same pair
            db.rollback()
            raise PlatformAlreadyConnectedError(name)
        db.refresh(record)

        logger.info(f"Platform connected: user={user_id}, platform={name}, id={record.id}")
        return ConnectionResult(
            platform_id=record.id,
            name=record.name.value,
            status=record.status.value,
        )

    @staticmethod
    def _credential_columns(credentials: Mapping[str, Any]) -> dict[str, str | None]:
        columns: dict[str, str | None] = {}
        for key, column in CREDENTIAL_FIELDS.items():
            value = credentials.get(key)
            columns[column] = str(value) if value is not None else None
        return columns
