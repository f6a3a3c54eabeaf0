"""Unit tests for the orchestrator."""
import asyncio

import pytest

from chatcompare.chat import ChatPhase, Orchestrator, key_display_name
from chatcompare.config import AppSettings


class TestKeyDisplayName:
    """Tests for human-readable key names."""

    @pytest.mark.parametrize("name,expected", [
        ("GEMINI_API_KEY", "GEMINI API Key"),
        ("OPENAI_COMPATIBLE_API_KEY", "OPENAI COMPATIBLE API Key"),
        ("MY_TOKEN", "MY TOKEN"),
    ])
    def test_display_name(self, name: str, expected: str):
        """Test underscores become spaces and API KEY becomes API Key."""
        assert key_display_name(name) == expected


class TestOrchestratorFlags:
    """Tests for derived global flags."""

    def test_missing_keys_deduplicated(self, gemini_config, openai_config, adapter_factory):
        """Test that a key shared by two columns is listed once, in column order."""
        second_gemini = gemini_config.model_copy(update={"id": "model-gemini-pro", "name": "Gemini Pro"})
        settings = AppSettings(model_configs=[gemini_config, second_gemini, openai_config])

        orchestrator = Orchestrator(settings, adapter_factory=adapter_factory)

        assert orchestrator.missing_key_names() == ["GEMINI API Key", "OPENAI COMPATIBLE API Key"]
        assert list(orchestrator.missing_keys()) == ["GEMINI_API_KEY", "OPENAI_COMPATIBLE_API_KEY"]
        assert orchestrator.all_keys_missing

    def test_some_keys_present(self, gemini_config, openai_config, adapter_factory):
        """Test flags when only one column has its key."""
        settings = AppSettings(
            model_configs=[gemini_config, openai_config],
            api_keys={"OPENAI_COMPATIBLE_API_KEY": "o-key"},
        )

        orchestrator = Orchestrator(settings, adapter_factory=adapter_factory)

        assert orchestrator.missing_key_names() == ["GEMINI API Key"]
        assert not orchestrator.all_keys_missing
        assert not orchestrator.gemini_search_available

    def test_duplicate_column_ids_rejected(self, gemini_config, adapter_factory):
        """Test that column ids must be unique."""
        settings = AppSettings(model_configs=[gemini_config, gemini_config])

        with pytest.raises(ValueError, match="Duplicate column id"):
            Orchestrator(settings, adapter_factory=adapter_factory)

    def test_search_flags(self, settings, adapter_factory):
        """Test search availability with a Gemini key and search initially off."""
        orchestrator = Orchestrator(settings, adapter_factory=adapter_factory)

        assert orchestrator.gemini_search_available
        assert not orchestrator.gemini_search_enabled


class TestOrchestrator:
    """Tests for broadcasting and global controls."""

    @pytest.mark.asyncio
    async def test_send_all_reaches_every_column(self, settings, adapter_factory):
        """Test that one submission produces one turn per column."""
        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            await orchestrator.send_all("Hi")

            for column in orchestrator.columns:
                assert [m.text for m in column.messages] == ["Hi", "Hello"]
            assert not orchestrator.any_busy

    @pytest.mark.asyncio
    async def test_keyless_column_reports_own_error(self, gemini_config, openai_config, adapter_factory):
        """Test that a column without a key errors while the others answer."""
        settings = AppSettings(
            model_configs=[gemini_config, openai_config],
            api_keys={"OPENAI_COMPATIBLE_API_KEY": "o-key"},
        )

        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            await orchestrator.send_all("Hi")

            gemini = orchestrator.column("model-gemini")
            openai = orchestrator.column("model-openai-compatible")
            assert gemini.messages == []
            assert gemini.error == (
                "Cannot send message: API Key (GEMINI_API_KEY) is missing for Gemini Flash."
            )
            assert [m.text for m in openai.messages] == ["Hi", "Hello"]
            assert openai.error is None

    @pytest.mark.asyncio
    async def test_any_busy_transitions(self, settings, adapter_factory, settle):
        """Test that busy listeners hear one True and one False per broadcast."""
        adapter_factory.gate = asyncio.Event()
        busy_changes = []

        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            orchestrator.add_busy_listener(busy_changes.append)

            orchestrator.broadcast("Hi")
            await settle()
            assert orchestrator.any_busy

            adapter_factory.gate.set()
            await orchestrator.join()

            assert not orchestrator.any_busy
            assert busy_changes == [True, False]

    @pytest.mark.asyncio
    async def test_clear_all(self, settings, adapter_factory):
        """Test that clear_all empties every column."""
        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            await orchestrator.send_all("Hi")

            orchestrator.clear_all()
            await orchestrator.join()

            assert all(column.messages == [] for column in orchestrator.columns)

    @pytest.mark.asyncio
    async def test_set_api_key_reconfigures_column(self, gemini_config, openai_config, adapter_factory):
        """Test that entering a key makes the column ready and drops it from the banner."""
        settings = AppSettings(model_configs=[gemini_config, openai_config])

        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            assert orchestrator.column("model-gemini").phase == ChatPhase.AWAITING_KEY

            await orchestrator.set_api_key("GEMINI_API_KEY", "  g-key  ")

            assert orchestrator.column("model-gemini").phase == ChatPhase.READY
            assert orchestrator.column("model-gemini").api_key == "g-key"
            assert orchestrator.column("model-openai-compatible").phase == ChatPhase.AWAITING_KEY
            assert orchestrator.missing_key_names() == ["OPENAI COMPATIBLE API Key"]
            assert orchestrator.gemini_search_available

    @pytest.mark.asyncio
    async def test_set_search_enabled(self, settings, adapter_factory):
        """Test that toggling search resets Gemini columns only."""
        async with Orchestrator(settings, adapter_factory=adapter_factory) as orchestrator:
            await orchestrator.send_all("Hi")

            await orchestrator.set_search_enabled(True)

            gemini = orchestrator.column("model-gemini")
            openai = orchestrator.column("model-openai-compatible")
            assert gemini.config.use_google_search
            assert gemini.config.name == "Gemini Flash (Search)"
            assert gemini.system_note == "Search enabled"
            assert gemini.messages == []
            assert len(openai.messages) == 2
            assert orchestrator.gemini_search_enabled

            await orchestrator.set_search_enabled(False)

            assert gemini.config.name == "Gemini Flash"
            assert not orchestrator.gemini_search_enabled
