"""Per-session memory of generated page content to avoid repeating it."""

from app.core.cache import CacheStore
from app.core.schemas_page import GeneratedPage

MAX_REMEMBERED = 10


class ContentMemory:
    """Tracks headlines and stat labels already shown to a session."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    @staticmethod
    def _key(session_id: str) -> str:
        return f"content_memory:{session_id}"

    def get(self, session_id: str) -> dict[str, list[str]]:
        stored = self.cache.get(self._key(session_id))
        if not stored:
            return {"headlines": [], "stat_labels": []}
        return {"headlines": list(stored["headlines"]), "stat_labels": list(stored["stat_labels"])}

    def record(self, session_id: str, page: GeneratedPage) -> None:
        memory = self.get(session_id)
        for section in page.sections:
            if section.headline not in memory["headlines"]:
                memory["headlines"].append(section.headline)
            for stat in section.stats:
                if stat.label not in memory["stat_labels"]:
                    memory["stat_labels"].append(stat.label)

        memory["headlines"] = memory["headlines"][-MAX_REMEMBERED:]
        memory["stat_labels"] = memory["stat_labels"][-MAX_REMEMBERED:]
        self.cache.set(self._key(session_id), memory)

    def clear(self, session_id: str) -> None:
        self.cache.evict(self._key(session_id))

    def prompt_block(self, session_id: str | None) -> str:
        """Prompt section listing content that must not be reused ('' if none)."""
        if not session_id:
            return ""
        memory = self.get(session_id)
        if not memory["headlines"] and not memory["stat_labels"]:
            return ""

        lines = ["PREVIOUSLY USED CONTENT - DO NOT REPEAT:"]
        if memory["headlines"]:
            lines.append("Headlines: " + "; ".join(memory["headlines"]))
        if memory["stat_labels"]:
            lines.append("Stat labels: " + "; ".join(memory["stat_labels"]))
        return "\n".join(lines)
