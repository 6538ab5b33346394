"""Tests for per-session content memory."""

from app.core.cache import TTLCache
from app.core.content_memory import MAX_REMEMBERED, ContentMemory
from app.core.page_validation import parse_page
from tests.fixtures_pages import valid_page


class TestContentMemory:
    def test_empty_session_has_no_prompt_block(self):
        memory = ContentMemory(TTLCache())
        assert memory.prompt_block("sess-1") == ""
        assert memory.prompt_block(None) == ""

    def test_record_and_prompt_block(self):
        memory = ContentMemory(TTLCache())
        memory.record("sess-1", parse_page(valid_page()))

        block = memory.prompt_block("sess-1")
        assert block.startswith("PREVIOUSLY USED CONTENT - DO NOT REPEAT:")
        assert "Prove Field Execution ROI Across Every Account" in block
        assert "Average payback window" in block

    def test_sessions_are_isolated(self):
        memory = ContentMemory(TTLCache())
        memory.record("sess-1", parse_page(valid_page()))
        assert memory.prompt_block("sess-2") == ""

    def test_duplicates_are_not_repeated(self):
        memory = ContentMemory(TTLCache())
        page = parse_page(valid_page())
        memory.record("sess-1", page)
        memory.record("sess-1", page)

        stored = memory.get("sess-1")
        assert len(stored["headlines"]) == 1
        assert len(stored["stat_labels"]) == 3

    def test_bounded(self):
        memory = ContentMemory(TTLCache())
        for i in range(MAX_REMEMBERED + 3):
            raw = valid_page()
            raw["sections"][0]["headline"] = f"Headline number {i} about depletions"
            memory.record("sess-1", parse_page(raw))

        headlines = memory.get("sess-1")["headlines"]
        assert len(headlines) == MAX_REMEMBERED
        assert headlines[-1] == f"Headline number {MAX_REMEMBERED + 2} about depletions"

    def test_clear(self):
        memory = ContentMemory(TTLCache())
        memory.record("sess-1", parse_page(valid_page()))
        memory.clear("sess-1")
        assert memory.get("sess-1") == {"headlines": [], "stat_labels": []}
