"""Tests for the Rich terminal UI and the command loop."""

import io

import pytest
from rich.console import Console

from ashfall.events import Events, GameEvent
from ashfall.ui import TerminalUI

from main import GameSession


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=140, record=True, color_system=None)


@pytest.fixture
def ui(rules, console):
    return TerminalUI(rules, console=console)


def output(console):
    return console.export_text()


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class TestRendering:
    def test_status_bar(self, ui, console, engine):
        ui.show_status_bar(engine.state)
        text = output(console)
        assert "The Gate" in text
        assert "Day 1, 08:00 (morning)" in text
        assert "still" in text

    def test_full_status(self, ui, console, engine):
        engine.unlock_gate("mara")
        ui.show_full_status(engine.state, engine.get_tension_description())
        text = output(console)
        assert "Mara" in text
        assert "Fear Admitted" in text
        assert "Uneasy" in text
        assert "BALANCED" in text

    def test_choices_are_numbered(self, ui, console):
        from ashfall.dialogue import LEAVE_CHOICE
        from ashfall.state import ChoiceDef

        ui.show_choices("edda", [ChoiceDef(id="a", text="Do you hear that hum?", voice_tag="GHOST"), LEAVE_CHOICE])
        text = output(console)
        assert "[1] Do you hear that hum? (GHOST)" in text
        assert "[2] [Leave]" in text
        assert "Edda" in text

    def test_empty_journal(self, ui, console, engine):
        ui.show_quests(engine.state)
        assert "No quests yet." in output(console)

    def test_journal(self, ui, console, engine):
        engine.start_quest("q1", "intervention", {"description": "Jonas is spiralling."})
        engine.start_quest("q2", "confession")
        engine.fail_quest("q2", "too late")

        ui.show_quests(engine.state)
        text = output(console)
        assert "Jonas is spiralling." in text
        assert "failed" in text
        assert "too late" in text

    def test_save_slots(self, ui, console):
        ui.show_save_slots(
            [
                {"slot": "autosave", "empty": True},
                {"slot": "quicksave", "empty": True, "corrupted": True},
                {"slot": "manual_1", "empty": False, "day": 3, "act": 2, "location": "well", "play_time": 3900},
            ]
        )
        text = output(console)
        assert "corrupted" in text
        assert "The Old Well" in text
        assert "1h 5m" in text

    def test_notable_event(self, ui, console):
        ui.show_event(GameEvent(type=Events.ACT_TRANSITION, data={"from": 1, "to": 2}))
        assert "Act 2 begins." in output(console)

    def test_quiet_event(self, ui, console):
        ui.show_event(GameEvent(type=Events.HUM_INTENSITY_CHANGE, data={"intensity": 0.3}))
        assert output(console) == ""


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class TestInput:
    def test_closed_stream_means_quit(self, ui, monkeypatch):
        def raise_eof():
            raise EOFError

        monkeypatch.setattr("builtins.input", raise_eof)
        assert ui.get_player_input() == "quit"
        assert ui.confirm("Really?") is True

    def test_interrupt_at_confirm_keeps_playing(self, ui, monkeypatch):
        def raise_interrupt():
            raise KeyboardInterrupt

        monkeypatch.setattr("builtins.input", raise_interrupt)
        assert ui.confirm("Really?") is False

    def test_confirm(self, ui, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda: " Yes ")
        assert ui.confirm("Really?") is True


# ---------------------------------------------------------------------------
# Command loop
# ---------------------------------------------------------------------------

@pytest.fixture
def session(tmp_path, ui):
    return GameSession(save_dir=str(tmp_path / "saves"), log_dir=None, seed=7, ui=ui)


def feed(monkeypatch, *answers):
    queue = list(answers)
    monkeypatch.setattr("builtins.input", lambda: queue.pop(0))


class TestGameSession:
    def test_go(self, session):
        assert session.process_player_input("go market square") is True
        assert session.engine.state.player.location == "market_square"
        assert session.engine.state.time.hour == 9

    def test_go_unconnected(self, session, console):
        session.process_player_input("go sealed_shaft")
        assert session.engine.state.player.location == "gate"
        assert "can't reach" in output(console)

    def test_wait(self, session):
        session.process_player_input("wait 5")
        assert session.engine.state.time.hour == 13

    def test_wait_rejects_garbage(self, session, console):
        session.process_player_input("wait soon")
        assert session.engine.state.time.hour == 8
        assert "not a number" in output(console)

    def test_talk_then_leave(self, session, monkeypatch):
        feed(monkeypatch, "1", "x")

        session.process_player_input("talk rask")

        rask = session.engine.get_npc("rask")
        assert rask.conversation_count == 2
        assert session.engine.current_dialogue_npc is None

    def test_talk_to_absent_npc(self, session, console):
        session.process_player_input("talk mara")
        assert "isn't here" in output(console)
        assert session.engine.current_dialogue_npc is None

    def test_save_and_load(self, session):
        session.process_player_input("save manual_2")
        session.process_player_input("go market_square")
        session.process_player_input("load manual_2")
        assert session.engine.state.player.location == "gate"

    def test_quit(self, session, monkeypatch):
        feed(monkeypatch, "y")
        assert session.process_player_input("quit") is False

    def test_unknown_command(self, session, console):
        assert session.process_player_input("dance") is True
        assert "Unknown command 'dance'" in output(console)


class TestRun:
    def test_run_ends_when_stdin_closes(self, session, ui, monkeypatch):
        reads = []

        def closed_stdin():
            reads.append(1)
            if len(reads) > 10:
                pytest.fail("run() kept reading from a closed stdin")
            raise EOFError

        monkeypatch.setattr("builtins.input", closed_stdin)
        monkeypatch.setattr(ui, "clear_screen", lambda: None)

        session.run()

        assert len(reads) == 2
        assert session.saves.has_save("autosave")
