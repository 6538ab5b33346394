"""Knowledge-base retrieval over the Supabase hybrid search RPCs.

Results are best-effort: any embedding or RPC failure yields an empty list.
"""

import asyncio
from typing import Any, Protocol

from app.core.embeddings import QueryEmbedder
from app.core.logging import get_logger
from app.core.schemas_page import KnowledgeSnippet
from app.core.schemas_persona import PainPoint

logger = get_logger(__name__)

MATCH_THRESHOLD = 0.5
KNOWLEDGE_TABLE = "knowledge_base"


class KnowledgeSearcher(Protocol):
    async def search(
        self, query: str, persona_tags: list[str] | None = None, limit: int = 5
    ) -> list[KnowledgeSnippet]: ...

    async def pain_point_documents(
        self, pain_points: list[PainPoint], limit: int = 3
    ) -> dict[PainPoint, list[KnowledgeSnippet]]: ...


def _row_score(row: dict) -> float:
    for field in ("similarity_score", "combined_score", "similarity"):
        value = row.get(field)
        if value is not None:
            try:
                return max(0.0, min(1.0, float(value)))
            except (TypeError, ValueError):
                return 0.0
    return 0.0


def _to_snippet(row: dict) -> KnowledgeSnippet | None:
    content = row.get("content")
    if not content:
        return None
    return KnowledgeSnippet(
        id=str(row["id"]) if row.get("id") is not None else None,
        content=content,
        source_type=row.get("source_type") or "document",
        source_url=row.get("source_url"),
        similarity_score=_row_score(row),
    )


def rank_snippets(rows: list[dict], limit: int) -> list[KnowledgeSnippet]:
    """Map raw RPC rows to snippets ordered by similarity, highest first."""
    snippets = [s for s in (_to_snippet(row) for row in rows or []) if s is not None]
    snippets.sort(key=lambda s: s.similarity_score, reverse=True)
    return snippets[:limit]


class KnowledgeSearch:
    """Hybrid text + vector search adapter."""

    def __init__(self, supabase: Any, embedder: QueryEmbedder):
        self.supabase = supabase
        self.embedder = embedder

    def _rpc(self, name: str, params: dict) -> list[dict]:
        response = self.supabase.rpc(name, params).execute()
        return response.data or []

    async def search(
        self, query: str, persona_tags: list[str] | None = None, limit: int = 5
    ) -> list[KnowledgeSnippet]:
        """
        Search the knowledge base.

        Args:
            query: Visitor message or derived query text
            persona_tags: Optional persona filter tags (e.g. ["supplier"])
            limit: Max documents to return

        Returns:
            Snippets ordered by similarity_score descending ([] on any failure)
        """
        if not query or not query.strip():
            return []

        try:
            embedding = await self.embedder.embed(query)
        except Exception as e:
            logger.warning(f"Knowledge search embedding failed: {e}")
            return []

        filters = persona_tags or None
        try:
            rows = await asyncio.to_thread(
                self._rpc,
                "hybrid_search",
                {
                    "query_text": query,
                    "query_embedding": embedding,
                    "filter_personas": filters,
                    "match_count": limit,
                },
            )
        except Exception as e:
            logger.warning(f"hybrid_search failed, falling back to match_documents: {e}")
            try:
                rows = await asyncio.to_thread(
                    self._rpc,
                    "match_documents",
                    {
                        "query_embedding": embedding,
                        "match_threshold": MATCH_THRESHOLD,
                        "match_count": limit,
                        "filter_personas": filters,
                    },
                )
            except Exception as fallback_error:
                logger.warning(f"match_documents failed: {fallback_error}")
                return []

        snippets = rank_snippets(rows, limit)
        logger.debug(
            f"Knowledge search returned {len(snippets)} documents",
            extra={"extra_data": {"count": len(snippets), "tags": filters}},
        )
        return snippets

    def _tagged_rows(self, pain_point: PainPoint, limit: int) -> list[dict]:
        response = (
            self.supabase.table(KNOWLEDGE_TABLE)
            .select("*")
            .contains("pain_point_tags", [pain_point.value])
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def pain_point_documents(
        self, pain_points: list[PainPoint], limit: int = 3
    ) -> dict[PainPoint, list[KnowledgeSnippet]]:
        """
        Knowledge rows tagged with each pain point, no embedding involved.

        A pain point whose query fails is left out of the result.
        """
        documents: dict[PainPoint, list[KnowledgeSnippet]] = {}
        for pain_point in pain_points:
            try:
                rows = await asyncio.to_thread(self._tagged_rows, pain_point, limit)
            except Exception as e:
                logger.warning(f"Pain point document query failed for {pain_point.value}: {e}")
                continue
            documents[pain_point] = [s for s in (_to_snippet(row) for row in rows) if s is not None]
        return documents
