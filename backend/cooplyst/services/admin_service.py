"""
Runtime settings and instance overview
"""

import json
import logging
import time
from typing import Any, Dict

import pydantic
from sqlalchemy import func
from sqlalchemy.orm import Session

from cooplyst.core.config import settings
from cooplyst.core.exceptions import ValidationError
from cooplyst.models.game import Game, GAME_STATUSES
from cooplyst.models.rating import Rating
from cooplyst.models.run import Run
from cooplyst.models.setting import Setting
from cooplyst.models.user import User
from cooplyst.schemas.provider_schemas import AdminInfo, AppSettings

logger = logging.getLogger(__name__)

ALLOWED_SETTINGS = ("vote_threshold", "vote_visibility", "game_api_providers")
STARTED_AT = time.time()


def _read_raw_settings(db: Session) -> Dict[str, str]:
    return {row.key: row.value for row in db.query(Setting).all()}


def load_settings(db: Session) -> AppSettings:
    """Typed runtime settings; any unparseable value falls back to its default"""
    raw = _read_raw_settings(db)
    values: Dict[str, Any] = {"vote_threshold": settings.DEFAULT_VOTE_THRESHOLD}

    for key in ALLOWED_SETTINGS:
        if key not in raw:
            continue
        value: Any = raw[key]
        if key == "game_api_providers":
            try:
                value = json.loads(value or "[]")
            except json.JSONDecodeError:
                logger.warning("Setting game_api_providers is not valid JSON, using default")
                continue
        try:
            # Validate each key on its own so one bad value does not discard the rest
            AppSettings.model_validate({key: value})
        except pydantic.ValidationError:
            logger.warning("Setting %s has an invalid value %r, using default", key, raw[key])
            continue
        values[key] = value

    return AppSettings.model_validate(values)


def _serialize_setting(key: str, value: Any) -> str:
    if key == "game_api_providers":
        return json.dumps(value)
    return str(value)


class AdminService:
    """Admin-only settings management and statistics"""

    def __init__(self, db: Session):
        self.db = db

    async def get_settings(self) -> Dict[str, str]:
        """All stored settings as raw strings"""
        return _read_raw_settings(self.db)

    async def update_settings(self, updates: Dict[str, Any]) -> Dict[str, str]:
        """Validate and store recognized settings; unknown keys are ignored"""
        pairs = {key: value for key, value in updates.items() if key in ALLOWED_SETTINGS}
        if not pairs:
            raise ValidationError("No valid settings provided")

        if isinstance(pairs.get("game_api_providers"), str):
            try:
                pairs["game_api_providers"] = json.loads(pairs["game_api_providers"])
            except json.JSONDecodeError:
                raise ValidationError("game_api_providers must be a JSON list")

        try:
            validated = AppSettings.model_validate(pairs)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid settings: {e.errors()[0]['msg']}")

        dumped = validated.model_dump(exclude_none=True)
        for key in pairs:
            value = _serialize_setting(key, dumped[key])
            row = self.db.query(Setting).filter(Setting.key == key).first()
            if row:
                row.value = value
            else:
                self.db.add(Setting(key=key, value=value))
        self.db.commit()
        logger.info("Settings updated: %s", ", ".join(sorted(pairs)))

        return _read_raw_settings(self.db)

    async def get_info(self) -> AdminInfo:
        """Application details and row counts"""
        status_counts = dict(
            self.db.query(Game.status, func.count(Game.id)).group_by(Game.status).all()
        )
        counts = {
            "users_total": self.db.query(User).count(),
            "users_admins": self.db.query(User).filter(User.role == "admin").count(),
            "games_total": self.db.query(Game).count(),
            "runs_total": self.db.query(Run).count(),
            "ratings_total": self.db.query(Rating).count(),
        }
        for status in GAME_STATUSES:
            counts[f"games_{status}"] = status_counts.get(status, 0)

        uptime = int(time.time() - STARTED_AT)
        return AdminInfo(
            app={
                "name": settings.APP_NAME,
                "version": settings.VERSION,
                "uptime_seconds": uptime,
            },
            counts=counts,
        )
