"""
Tests for Rootstock Yield RAG
=============================

Ingestion, context assembly, the knowledge base and prompt building.
"""

import threading
import time

import pytest

from yieldrag.knowledge_base import KnowledgeBase
from yieldrag.pipeline.ingestion import IngestionPipeline
from yieldrag.pipeline.query import ContextAssembler
from yieldrag.stores.document_store import DocumentStore

from conftest import StaticSource, make_record


class FailingSource:
    fetched_at = None

    def fetch(self, force_refresh=False):
        raise RuntimeError("upstream down")


class BrokenStore(DocumentStore):
    def search(self, query, k=5):
        raise RuntimeError("store unavailable")


class SlowFirstSource:
    """First fetch blocks until released; later fetches return a newer pull."""

    def __init__(self, first, second):
        self.pulls = [(1.0, first), (2.0, second)]
        self.fetched_at = None
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch(self, force_refresh=False):
        self.calls += 1
        if self.calls == 1:
            self.entered.set()
            self.release.wait(timeout=5)
            self.fetched_at, records = self.pulls[0]
        else:
            self.fetched_at, records = self.pulls[1]
        return list(records)


def assembler_for(store):
    return ContextAssembler(store, top_k=5, top_n=5, chain_name="Rootstock", verbose=False)


class TestIngestion:
    """Tests for the ingestion pipeline."""

    def test_ingest_installs_generation(self, two_records):
        store = DocumentStore()
        result = IngestionPipeline(store).ingest(two_records)

        assert result.success
        assert result.records_received == 2
        assert result.records_indexed == 2
        assert result.documents_created == store.count == 10

    def test_partial_failure_continues(self, two_records):
        store = DocumentStore()
        records = [two_records[0], make_record("Broken", "BRK", tvl_usd="lots"), two_records[1]]

        result = IngestionPipeline(store).ingest(records)

        assert result.success
        assert result.records_indexed == 2
        assert [f.index for f in result.failures] == [1]
        assert store.get("protocol-A-AX") is not None
        assert store.get("protocol-B-BX") is not None

    def test_all_failures_install_empty_generation(self, two_records):
        store = DocumentStore()
        pipeline = IngestionPipeline(store)
        pipeline.ingest(two_records)

        result = pipeline.ingest([make_record("Broken", "BRK", apy=None)])

        assert result.success
        assert result.records_indexed == 0
        assert len(result.failures) == 1
        assert store.count == 0

    def test_result_to_dict(self, two_records):
        result = IngestionPipeline(DocumentStore()).ingest(
            [make_record("Broken", "BRK", apy=None)] + two_records
        )
        data = result.to_dict()

        assert data["records_indexed"] == 2
        assert data["failures"][0]["project"] == "Broken"

    def test_suffixed_ids_never_collide(self):
        store = DocumentStore()
        records = [
            make_record("X", "Y"),
            make_record("X", "Y"),
            make_record("X", "Y-2"),
            make_record("Z", "ZZ"),
        ]

        result = IngestionPipeline(store).ingest(records)

        assert result.success
        assert result.errors == []
        assert result.records_indexed == 4
        assert result.documents_created == store.count == 10
        for doc_id in ("protocol-X-Y", "protocol-X-Y-2", "protocol-X-Y-2-2", "protocol-Z-ZZ"):
            assert store.get(doc_id) is not None


class TestContextAssembler:
    """Tests for grouped rendering and the fallback overview."""

    def test_example_query(self, two_records):
        store = DocumentStore()
        result = IngestionPipeline(store).ingest(two_records)
        assembler = assembler_for(store)
        assembler.update_records(result.records)

        hits = store.search_with_scores("What is A's APY?", k=5)
        scores = {hit.document.id: hit.score for hit in hits}
        assert scores["protocol-A-AX"] > scores["protocol-B-BX"]

        context = assembler.query("What is A's APY?")

        assert context.startswith("## Retrieved Information\n\n### Protocol Details\n\n")
        protocol_section = context.split("### Market Overview")[0]
        assert "APY: 12.34%" in protocol_section
        assert protocol_section.index("Protocol: A") < protocol_section.index("Protocol: B")

    def test_sections_in_fixed_order(self, two_records):
        store = DocumentStore()
        IngestionPipeline(store).ingest(two_records)

        context = assembler_for(store).query("What is A's APY?")

        protocol = context.index("### Protocol Details")
        category = context.index("### Market Overview")
        project = context.index("### Project Information")
        assert protocol < category < project
        assert "A protocols on Rootstock:" in context[project:]

    def test_empty_groups_are_omitted(self, rootstock_records):
        store = DocumentStore()
        IngestionPipeline(store).ingest(rootstock_records)

        # top-tvl scores 4; the four protocol documents fill the rest at 0
        context = assembler_for(store).query("largest biggest locked value")

        assert context.index("### Protocol Details") < context.index("### Market Overview")
        assert "Largest Rootstock Protocols by TVL:" in context
        assert "### Project Information" not in context

    def test_content_separated_by_blank_lines(self, two_records):
        store = DocumentStore()
        IngestionPipeline(store).ingest(two_records)

        context = assembler_for(store).query("What is A's APY?")

        assert "Stablecoin: No\n\nProtocol: B" in context

    def test_deterministic_output(self, rootstock_records):
        outputs = []
        for _ in range(2):
            kb = KnowledgeBase(source=StaticSource(rootstock_records))
            kb.ingest(rootstock_records)
            outputs.append(kb.query("best sovryn-dex yield for RBTC-DOC"))

        assert outputs[0] == outputs[1]

    def test_fallback_on_empty_store(self, two_records):
        store = DocumentStore()
        assembler = assembler_for(store)
        assembler.update_records(two_records)

        context = assembler.query("anything")

        assert context.startswith("## Retrieved Information\n\n### Rootstock Market Overview")
        assert "Top Performing Protocols by APY:\n- A (AX): 12.34% APY, TVL: $1,000,000\n- B (BX)" in context
        assert "Largest Protocols by TVL:\n- B (BX): $5,000,000 TVL, APY: 5.00%\n- A (AX)" in context
        assert "### Exposure Types\n\n- single: 1 protocols\n- multi: 1 protocols\n" in context
        assert "### Impermanent Loss Risk Categories\n\n- no: 1 protocols\n- yes: 1 protocols\n" in context

    def test_fallback_on_store_failure(self, two_records):
        assembler = assembler_for(BrokenStore())
        assembler.update_records(two_records)

        context = assembler.query("What is A's APY?")

        assert context == assembler.overview()
        assert "- A (AX): 12.34% APY" in context

    def test_overview_with_no_records(self):
        overview = assembler_for(DocumentStore()).overview()

        assert "Top Performing Protocols by APY:" in overview
        assert "Largest Protocols by TVL:" in overview
        assert "### Exposure Types" in overview
        assert "### Impermanent Loss Risk Categories" in overview
        assert "- " not in overview

    def test_overview_counts_in_first_seen_order(self, rootstock_records):
        assembler = assembler_for(DocumentStore())
        assembler.update_records(rootstock_records)

        overview = assembler.overview()

        assert "- multi: 2 protocols\n- single: 2 protocols" in overview
        assert "- yes: 2 protocols\n- no: 2 protocols" in overview

    def test_overview_ties_keep_record_order(self):
        records = [
            make_record("t1", "T1", apy=5.0, tvl_usd=1000.0),
            make_record("t2", "T2", apy=5.0, tvl_usd=1000.0),
            make_record("t3", "T3", apy=5.0, tvl_usd=1000.0),
        ]
        assembler = ContextAssembler(DocumentStore(), top_k=5, top_n=2, chain_name="Rootstock", verbose=False)
        assembler.update_records(records)

        overview = assembler.overview()

        assert (
            "Top Performing Protocols by APY:\n"
            "- t1 (T1): 5.00% APY, TVL: $1,000\n"
            "- t2 (T2): 5.00% APY, TVL: $1,000\n\n"
        ) in overview
        assert (
            "Largest Protocols by TVL:\n"
            "- t1 (T1): $1,000 TVL, APY: 5.00%\n"
            "- t2 (T2): $1,000 TVL, APY: 5.00%\n\n"
        ) in overview
        assert "t3" not in overview


class TestKnowledgeBase:
    """Tests for the composition root."""

    def test_refresh_ingests_new_pull_once(self, two_records):
        source = StaticSource(two_records)
        kb = KnowledgeBase(source=source)

        first = kb.refresh()
        second = kb.refresh()

        assert first is not None and first.records_indexed == 2
        assert second is None
        assert source.calls == 2
        assert kb.document_count == 10

    def test_forced_refresh_reingests(self, two_records):
        kb = KnowledgeBase(source=StaticSource(two_records))
        kb.refresh()

        assert kb.refresh(force_refresh=True) is not None

    def test_concurrent_refreshes_leave_newest_pull_installed(self):
        source = SlowFirstSource(
            first=[make_record("old", "OLD")],
            second=[make_record("new", "NEW")],
        )
        kb = KnowledgeBase(source=source)

        slow = threading.Thread(target=kb.refresh)
        slow.start()
        assert source.entered.wait(timeout=5)
        fast = threading.Thread(target=kb.refresh, kwargs={"force_refresh": True})
        fast.start()
        time.sleep(0.05)
        source.release.set()
        slow.join(timeout=5)
        fast.join(timeout=5)

        assert [r.project for r in kb.records] == ["new"]
        assert kb.store.get("protocol-new-NEW") is not None
        assert kb.store.get("protocol-old-OLD") is None
        assert "- new (NEW)" in kb.query("anything")

    def test_ingest_updates_overview_records(self, two_records):
        kb = KnowledgeBase(source=StaticSource([]))
        kb.ingest([make_record("Broken", "BRK", apy=None)] + two_records)

        assert list(kb.records) == two_records
        assert kb.last_updated is not None

    def test_separate_instances_are_isolated(self, two_records):
        kb1 = KnowledgeBase(source=StaticSource(two_records))
        kb2 = KnowledgeBase(source=StaticSource([]))
        kb1.ingest(two_records)

        assert kb1.document_count == 10
        assert kb2.document_count == 0

    def test_get_project_data(self):
        records = [
            make_record("sovryn-dex", "RBTC", project_name="Sovryn"),
            make_record("tropykus", "DOC"),
        ]
        kb = KnowledgeBase(source=StaticSource(records))
        kb.ingest(records)

        assert [r.symbol for r in kb.get_project_data("SOVRYN")] == ["RBTC"]
        assert [r.symbol for r in kb.get_project_data("tropy")] == ["DOC"]
        assert kb.get_project_data("lido") == []


class TestPromptBuilder:
    """Tests for system prompt assembly."""

    def test_prompt_uses_last_user_message(self, two_records):
        kb = KnowledgeBase(source=StaticSource(two_records))
        messages = [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi"},
            {"role": "user", "content": "What is A's APY?"},
        ]

        result = kb.build_prompt(messages)

        assert result.query == "What is A's APY?"
        assert result.messages == messages
        assert "Rootstock Yield Insight Agent" in result.system_prompt
        assert result.context in result.system_prompt
        assert "APY: 12.34%" in result.system_prompt

    def test_prompt_survives_refresh_failure(self):
        kb = KnowledgeBase(source=FailingSource())

        result = kb.build_prompt([{"role": "user", "content": "best yield?"}])

        assert "### Rootstock Market Overview" in result.system_prompt


class TestSettings:
    """Tests for configuration."""

    def test_settings_defaults(self):
        from config.settings import Settings

        settings = Settings()

        assert settings.source.chain == "Rootstock"
        assert settings.source.cache_ttl_seconds == 900
        assert settings.synthesis.top_n == 5
        assert settings.synthesis.domain_keywords == ["rootstock", "rsk", "bitcoin"]
        assert settings.retrieval.top_k == 5

    def test_env_override(self, monkeypatch):
        from config.settings import SourceSettings

        monkeypatch.setenv("RAG_SOURCE_CHAIN", "Ethereum")

        assert SourceSettings().chain == "Ethereum"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
