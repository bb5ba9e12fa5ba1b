"""
Unit tests for the AgentService facade.
"""

import threading
import time
from unittest.mock import patch

import pytest

from omsagent.service import AgentService
from omsagent.sessions import LRUEvictionPolicy, SessionRegistry


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(system_prompt="You are the Meteo OMS AI Assistant.")


def _service(registry, llm, store, embedder, **kwargs) -> AgentService:
    return AgentService(registry=registry, llm=llm, store=store, embedder=embedder, **kwargs)


@pytest.mark.unit
class TestChat:
    def test_creates_session_on_first_contact(self, registry, scripted_llm, text_reply, fake_store, fake_embedder):
        service = _service(registry, scripted_llm([text_reply("Hello!")]), fake_store, fake_embedder)

        reply = service.chat(None, "Hi")

        assert reply.response == "Hello!"
        assert reply.rounds == 1
        assert reply.session_id in registry

    def test_history_accumulates_across_turns(
        self, registry, scripted_llm, text_reply, fake_store, fake_embedder
    ):
        llm = scripted_llm([text_reply("First."), text_reply("Second.")])
        service = _service(registry, llm, fake_store, fake_embedder)

        session_id = service.chat(None, "one").session_id
        service.chat(session_id, "two")

        roles = [m.role for m in registry.get(session_id).messages]
        assert roles == ["system", "user", "assistant", "user", "assistant"]
        assert [m.content for m in llm.calls[1]][-1] == "two"

    def test_failed_turn_leaves_session_unchanged(
        self, registry, scripted_llm, text_reply, fake_store, fake_embedder
    ):
        class FlakyLLM:
            def __init__(self):
                self.fail = False

            def complete(self, messages, tools=None, temperature=None):
                if self.fail:
                    raise RuntimeError("gateway down")
                return text_reply("ok")

        llm = FlakyLLM()
        service = _service(registry, llm, fake_store, fake_embedder)
        session_id = service.chat(None, "first").session_id
        before = list(registry.get(session_id).messages)

        llm.fail = True
        with pytest.raises(RuntimeError):
            service.chat(session_id, "second")

        assert registry.get(session_id).messages == before

    def test_max_rounds_passed_through(self, registry, repeating_llm, fake_store, fake_embedder):
        service = _service(registry, repeating_llm, fake_store, fake_embedder, max_rounds=2)

        reply = service.chat(None, "loop")

        assert reply.rounds == 2
        assert repeating_llm.calls == 2

    def test_turns_for_one_session_are_serialized(self, registry, fake_store, fake_embedder, text_reply):
        class SlowLLM:
            def __init__(self):
                self.active = 0
                self.max_active = 0
                self.lock = threading.Lock()

            def complete(self, messages, tools=None, temperature=None):
                with self.lock:
                    self.active += 1
                    self.max_active = max(self.max_active, self.active)
                time.sleep(0.05)
                with self.lock:
                    self.active -= 1
                return text_reply("ok")

        llm = SlowLLM()
        service = _service(registry, llm, fake_store, fake_embedder)
        session_id = service.chat(None, "warm up").session_id

        threads = [threading.Thread(target=service.chat, args=(session_id, f"m{i}")) for i in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert llm.max_active == 1
        assert sum(1 for m in registry.get(session_id).messages if m.role == "user") == 4

    def test_session_evicted_before_turn_keeps_its_log(self, scripted_llm, text_reply, fake_store, fake_embedder):
        registry = SessionRegistry(system_prompt="p", eviction_policy=LRUEvictionPolicy(1))
        registry.create("a")
        lookup = registry.get_or_create

        def lookup_then_crowd_out(session_id):
            session = lookup(session_id)
            registry.create("other")
            return session

        service = _service(registry, scripted_llm([text_reply("kept")]), fake_store, fake_embedder)
        with patch.object(registry, "get_or_create", side_effect=lookup_then_crowd_out):
            service.chat("a", "hello")

        restored = registry.get("a")
        assert restored is not None
        assert [m.content for m in restored.messages] == ["p", "hello", "kept"]

    def test_session_deleted_during_turn_stays_deleted(self, registry, text_reply, fake_store, fake_embedder):
        class DeletingLLM:
            def complete(self, messages, tools=None, temperature=None):
                registry.delete("a")
                return text_reply("answer")

        service = _service(registry, DeletingLLM(), fake_store, fake_embedder)
        registry.create("a")

        reply = service.chat("a", "hello")

        assert reply.response == "answer"
        assert "a" not in registry


@pytest.mark.unit
class TestSessionsAndKnowledge:
    def test_delete_session(self, registry, scripted_llm, text_reply, fake_store, fake_embedder):
        service = _service(registry, scripted_llm([text_reply("x")]), fake_store, fake_embedder)
        session_id = service.chat(None, "hi").session_id

        assert service.session_count == 1
        assert service.delete_session(session_id) is True
        assert service.delete_session(session_id) is False
        assert service.session_count == 0

    def test_ingest_and_stats(self, registry, scripted_llm, fake_store, fake_embedder):
        service = _service(registry, scripted_llm([]), fake_store, fake_embedder)

        result = service.ingest("Allocated means inventory is reserved.", {"category": "process"})

        assert result.chunks_stored == 1
        assert service.knowledge_stats() == {"total_documents": 1, "categories": {"process": 1}}

    def test_search(self, registry, scripted_llm, fake_store, fake_embedder, sample_results):
        fake_store.matches = sample_results
        service = _service(registry, scripted_llm([]), fake_store, fake_embedder)

        results = service.search("stuck", match_count=2, threshold=0.3)

        assert results == sample_results
        assert fake_store.match_calls[0]["match_count"] == 2
        assert fake_store.match_calls[0]["threshold"] == 0.3

    def test_graph_data(self, registry, scripted_llm, fake_store, fake_embedder):
        service = _service(registry, scripted_llm([]), fake_store, fake_embedder)
        service.ingest("Doc one.", {"source": "a.md", "category": "process"})

        data = service.graph_data(similarity_threshold=0.5)

        assert data.stats.totalSources == 1
        assert {n.type for n in data.nodes} == {"source", "chunk"}

    def test_tool_context_uses_service_clients(self, registry, scripted_llm, fake_store, fake_embedder):
        service = _service(registry, scripted_llm([]), fake_store, fake_embedder)

        context = service.tool_context()

        assert context.store is fake_store
        assert context.embedder is fake_embedder
