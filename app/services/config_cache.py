"""Process-wide snapshot of intents and reply templates.

The snapshot is immutable. `load()` builds a fresh one and swaps it in with a
single reference assignment, so readers always see a complete snapshot and
never need a lock. Reloads only happen at startup and on an explicit admin
request.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import IntentDefinition, ReplyTemplate
from app.services.alert_service import alert_config_failure

logger = get_logger("config_cache")


class ConfigLoadError(Exception):
    """Raised when intents/templates could not be read from storage."""


@dataclass(frozen=True)
class IntentInfo:
    name: str
    description: Optional[str]
    is_action: bool
    is_complaint_like: bool


@dataclass(frozen=True)
class TemplateInfo:
    sub_intent: Optional[str]
    label: Optional[str]
    message: str


@dataclass(frozen=True)
class ConfigSnapshot:
    intents: Tuple[IntentInfo, ...] = ()
    action_intent_names: frozenset = frozenset()
    complaint_intent_names: frozenset = frozenset()
    templates: Mapping[str, Tuple[TemplateInfo, ...]] = field(default_factory=lambda: MappingProxyType({}))
    loaded_at: Optional[datetime] = None

    def templates_for(self, intent_name: str) -> Tuple[TemplateInfo, ...]:
        return self.templates.get(intent_name, ())

    def first_template(self, intent_name: str, sub_intent: Optional[str] = None) -> Optional[TemplateInfo]:
        """Template with matching sub_intent if there is one, otherwise the first of the group."""
        candidates = self.templates_for(intent_name)
        if not candidates:
            return None
        if sub_intent:
            for template in candidates:
                if template.sub_intent == sub_intent:
                    return template
        return candidates[0]


def build_snapshot(db: Session) -> ConfigSnapshot:
    intent_rows = db.query(IntentDefinition).order_by(IntentDefinition.id).all()
    intents = tuple(
        IntentInfo(
            name=row.name,
            description=row.description,
            is_action=bool(row.is_action),
            is_complaint_like=bool(row.is_complaint_like),
        )
        for row in intent_rows
    )

    template_rows = (
        db.query(ReplyTemplate)
        .filter(ReplyTemplate.is_active.is_(True))
        .order_by(ReplyTemplate.intent_name, ReplyTemplate.sort_order, ReplyTemplate.id)
        .all()
    )
    grouped: dict[str, list[TemplateInfo]] = {}
    for row in template_rows:
        grouped.setdefault(row.intent_name, []).append(
            TemplateInfo(sub_intent=row.sub_intent, label=row.display_label, message=row.message)
        )

    return ConfigSnapshot(
        intents=intents,
        action_intent_names=frozenset(i.name for i in intents if i.is_action),
        complaint_intent_names=frozenset(i.name for i in intents if i.is_complaint_like),
        templates=MappingProxyType({name: tuple(items) for name, items in grouped.items()}),
        loaded_at=datetime.now(timezone.utc),
    )


class ConfigCache:
    def __init__(self) -> None:
        self._snapshot: Optional[ConfigSnapshot] = None
        self._reload_lock = threading.Lock()

    def get(self) -> Optional[ConfigSnapshot]:
        return self._snapshot

    def load(self, db: Session) -> ConfigSnapshot:
        """Rebuild the snapshot from storage. On failure the previous snapshot stays active."""
        with self._reload_lock:
            try:
                snapshot = build_snapshot(db)
            except SQLAlchemyError as exc:
                logger.error(
                    "Config load failed, keeping previous snapshot",
                    extra={"context": {"error": str(exc), "has_previous": self._snapshot is not None}},
                )
                alert_config_failure(exc, has_previous=self._snapshot is not None)
                raise ConfigLoadError(str(exc)) from exc

            self._snapshot = snapshot

        logger.info(
            "Config loaded",
            extra={
                "context": {
                    "intents": len(snapshot.intents),
                    "action_intents": len(snapshot.action_intent_names),
                    "template_intents": len(snapshot.templates),
                }
            },
        )
        return snapshot

    def ensure_loaded(self, db: Session) -> ConfigSnapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        logger.warning("Config requested before first load, loading synchronously")
        return self.load(db)


_config_cache: Optional[ConfigCache] = None


def get_config_cache() -> ConfigCache:
    """Get or create the process-wide config cache."""
    global _config_cache
    if _config_cache is None:
        _config_cache = ConfigCache()
    return _config_cache
