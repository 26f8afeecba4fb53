"""Unit tests for the Textual app wiring."""
import pytest

from jean.ui.app import JeanApp


@pytest.fixture
def app():
    return JeanApp("ws://127.0.0.1:1/ws/chat")


class TestQuit:
    """Tests for the quit action."""

    @pytest.mark.asyncio
    async def test_exits_directly_when_controller_is_stopped(self, app, monkeypatch):
        exits, quits = [], []
        monkeypatch.setattr(app, "exit", lambda *args, **kwargs: exits.append(args))
        monkeypatch.setattr(app.controller, "quit", lambda: quits.append(True))

        await app.action_quit()

        assert exits == [()]
        assert quits == []

    @pytest.mark.asyncio
    async def test_running_controller_is_asked_to_quit(self, app, monkeypatch):
        exits, quits = [], []
        monkeypatch.setattr(app, "exit", lambda *args, **kwargs: exits.append(args))
        monkeypatch.setattr(app.controller, "quit", lambda: quits.append(True))
        monkeypatch.setattr(app.controller, "_running", True)

        await app.action_quit()

        assert quits == [True]
        assert exits == []
