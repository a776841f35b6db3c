"""Rate-card repository: append-only versions stored as JSON payloads."""

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ...core.clock import utc_now
from ...core.exceptions import ConfigError, NotFoundError
from ...pricing.rate_card import RateCardConfig, parse_rate_card
from ...pricing.store import select_active
from ..schema import RateCardRow
from ..transaction import session_scope
from ..utils import to_db

logger = logging.getLogger(__name__)


class RateCardRepository:
    """Repository for rate-card versions within one session."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, config: RateCardConfig) -> None:
        latest = self.latest_version()
        if config.version <= latest:
            raise ConfigError(
                f"Rate card version {config.version} is not newer than {latest}",
                details={"version": config.version, "latest": latest},
            )
        self.session.add(
            RateCardRow(
                version=config.version,
                effective_from=to_db(config.effective_from),
                payload_json=config.model_dump_json(),
                created_by=config.created_by,
            )
        )
        self.session.flush()

    def get(self, version: int) -> RateCardConfig | None:
        row = self.session.get(RateCardRow, version)
        return self._to_domain(row) if row is not None else None

    def effective_at(self, at: datetime) -> list[RateCardConfig]:
        stmt = (
            select(RateCardRow)
            .where(RateCardRow.effective_from <= to_db(at))
            .order_by(RateCardRow.version.desc())
        )
        result = self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    def latest_version(self) -> int:
        return self.session.execute(select(func.max(RateCardRow.version))).scalar() or 0

    def versions(self) -> list[int]:
        stmt = select(RateCardRow.version).order_by(RateCardRow.version)
        return list(self.session.execute(stmt).scalars().all())

    def _to_domain(self, row: RateCardRow) -> RateCardConfig:
        return parse_rate_card(json.loads(row.payload_json))


class SqlRateCardStore:
    """RateCardStore over SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Any]) -> None:
        self.session_factory = session_factory

    def publish(self, config: RateCardConfig) -> None:
        try:
            with session_scope(self.session_factory) as session:
                RateCardRepository(session).add(config)
        except IntegrityError as e:
            raise ConfigError(
                f"Rate card version {config.version} was published concurrently",
                details={"version": config.version},
            ) from e
        logger.info("Published rate card version %d", config.version)

    def get(self, version: int) -> RateCardConfig:
        with self.session_factory() as session:
            config = RateCardRepository(session).get(version)
        if config is None:
            raise NotFoundError(f"Rate card version {version} not found")
        return config

    def get_active(self, at: datetime | None = None) -> RateCardConfig:
        if at is None:
            at = utc_now()
        with self.session_factory() as session:
            candidates = RateCardRepository(session).effective_at(at)
        return select_active(candidates, at)

    def list_versions(self) -> list[int]:
        with self.session_factory() as session:
            return RateCardRepository(session).versions()
