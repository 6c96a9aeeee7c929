from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.config import settings
from app.logging_config import get_logger
from app.models import KnowledgeEntry

logger = get_logger("knowledge_service")

# TODO: replace category filtering with pgvector or full-text search over knowledge_base.content


def retrieve_knowledge(
    db: Session,
    text: str,
    categories: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> List[KnowledgeEntry]:
    """Recent knowledge entries from the allow-listed categories, newest update first."""
    categories = list(categories if categories is not None else settings.knowledge_categories)
    limit = limit if limit is not None else settings.knowledge_limit

    if not categories:
        return []

    entries = (
        db.query(KnowledgeEntry)
        .filter(KnowledgeEntry.category.in_(categories))
        .order_by(KnowledgeEntry.updated_at.desc(), KnowledgeEntry.id.desc())
        .limit(limit)
        .all()
    )
    logger.info(f"Knowledge retrieval: {len(entries)} entries for '{(text or '')[:30]}'")
    return entries


def retrieve_knowledge_for_intent(
    db: Session,
    intent: str,
    limit: Optional[int] = None,
) -> List[KnowledgeEntry]:
    """Knowledge entries whose category is exactly the classified intent."""
    limit = limit if limit is not None else settings.knowledge_intent_limit
    if not intent:
        return []

    return (
        db.query(KnowledgeEntry)
        .filter(KnowledgeEntry.category == intent)
        .order_by(KnowledgeEntry.updated_at.desc(), KnowledgeEntry.id.desc())
        .limit(limit)
        .all()
    )


def format_knowledge_context(entries: Sequence[KnowledgeEntry]) -> str:
    """Format knowledge entries for the orchestrator prompt."""
    if not entries:
        return ""

    blocks = []
    for entry in entries:
        if not entry.content:
            continue
        blocks.append(f"[#{entry.category}] {entry.title}\n{entry.content}")

    return "\n\n".join(blocks)
