"""Terminal UI for the Ashfall rule engine using Rich."""

import os
from typing import Any, Optional

from rich.box import DOUBLE, ROUNDED
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..engine.voice import get_dominant_voice
from ..events import Events, GameEvent
from ..persistence.save_manager import format_play_time
from ..state.game_state import GameState
from ..state.static_config import ChoiceDef, NarrativeRules

# Events worth a line in the terminal while playing.
NOTABLE_EVENTS = {
    Events.ACT_TRANSITION: "bold magenta",
    Events.NPC_GATE_UNLOCK: "bold green",
    Events.QUEST_START: "bold yellow",
    Events.QUEST_COMPLETE: "green",
    Events.QUEST_FAIL: "red",
    Events.TREMOR: "bold red",
    Events.CURIE_MANIFESTATION: "bold magenta",
    Events.NPC_STRESS_CRITICAL: "red",
    Events.WEATHER_CHANGE: "cyan",
    Events.DAY_START: "cyan",
    Events.ENDING_LOCKED: "bold magenta",
}

VOICE_STYLES = {
    "LOGIC": "blue",
    "INSTINCT": "red",
    "EMPATHY": "green",
    "GHOST": "magenta",
}


class TerminalUI:
    """Rich terminal interface for an Ashfall session."""

    def __init__(self, rules: NarrativeRules, console: Optional[Console] = None):
        self.console = console or Console()
        self.rules = rules

    def clear_screen(self) -> None:
        """Clear the terminal screen."""
        os.system("cls" if os.name == "nt" else "clear")

    def show_title_screen(self) -> None:
        """Display the title screen."""
        self.console.print(
            Panel(
                Text("A S H F A L L", justify="center", style="bold yellow"),
                subtitle="a settlement above a sealed shaft",
                box=DOUBLE,
                border_style="yellow",
            )
        )
        self.console.print()

    def _location_name(self, location_id: str) -> str:
        location = self.rules.get_location(location_id)
        return location.name if location else location_id

    def _npc_name(self, npc_id: str) -> str:
        npc = self.rules.get_npc(npc_id)
        return npc.name if npc else npc_id

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def show_status_bar(self, game_state: GameState) -> None:
        """One-line overview: where, when, how tense."""
        time = game_state.time
        narrative = game_state.narrative

        status_table = Table(box=ROUNDED, show_header=True, header_style="bold")
        status_table.add_column("Location", justify="center")
        status_table.add_column("Time", justify="center")
        status_table.add_column("Act", justify="center")
        status_table.add_column("Tension", justify="center")
        status_table.add_column("Weather", justify="center")

        tension_style = "green" if narrative.tension < 40 else "yellow" if narrative.tension < 70 else "red"
        status_table.add_row(
            self._location_name(game_state.player.location),
            f"Day {time.day}, {time.hour:02d}:00 ({time.time_of_day})",
            str(narrative.current_act),
            f"[{tension_style}]{narrative.tension}[/{tension_style}]",
            game_state.environment.weather,
        )
        self.console.print(status_table)

    def show_full_status(self, game_state: GameState, tension_description: str = "") -> None:
        """Status bar, NPC table and voices."""
        self.show_status_bar(game_state)
        if tension_description:
            self.console.print(f"[dim italic]{tension_description}[/dim italic]")
        self.console.print()
        self.show_npcs(game_state)
        self.show_voices(game_state)

        curie = game_state.curie
        self.console.print(
            Panel(
                f"Activity {curie.activity:.2f}   Coherence {curie.coherence:.2f}   "
                f"Hum {game_state.environment.hum_intensity:.2f}   "
                f"Manifestations {curie.manifestations}",
                title="[bold]Beneath[/bold]",
                box=ROUNDED,
                border_style="magenta",
            )
        )

    def show_npcs(self, game_state: GameState) -> None:
        npc_table = Table(box=ROUNDED, show_header=True, header_style="bold", title="Residents")
        npc_table.add_column("Name", style="cyan")
        npc_table.add_column("Where")
        npc_table.add_column("Trust", justify="right")
        npc_table.add_column("Stress", justify="right")
        npc_table.add_column("Gate", justify="center")
        npc_table.add_column("Met", justify="center")

        for npc_id, npc in game_state.npcs.items():
            arc = self.rules.get_arc(npc_id)
            gate_name = arc.gate_name(npc.current_gate) if arc else None
            stress_style = "red" if npc.stress > 80 else "white"
            npc_table.add_row(
                self._npc_name(npc_id),
                self._location_name(npc.location),
                str(npc.relationship),
                f"[{stress_style}]{npc.stress}[/{stress_style}]",
                f"{npc.current_gate}" + (f" · {gate_name}" if gate_name else ""),
                "yes" if npc.met else "-",
            )
        self.console.print(npc_table)

    def show_voices(self, game_state: GameState) -> None:
        scores = game_state.player.voice_scores
        dominant = get_dominant_voice(scores)
        parts = []
        for voice, score in scores.items():
            style = VOICE_STYLES.get(voice, "white")
            parts.append(f"[{style}]{voice}[/{style}] {score}")
        ending = game_state.narrative.ending_path or "undecided"
        locked = " (locked)" if game_state.narrative.ending_locked else ""
        self.console.print(
            Panel(
                "   ".join(parts) + f"\n\nDominant: {dominant.voice} ({dominant.confidence})"
                f"   Ending: {ending}{locked}",
                title="[bold]Voices[/bold]",
                box=ROUNDED,
                border_style="blue",
            )
        )

    # -------------------------------------------------------------------------
    # Dialogue & quests
    # -------------------------------------------------------------------------

    def show_choices(self, npc_id: str, choices: list[ChoiceDef]) -> None:
        """Numbered list of dialogue options."""
        lines = []
        for index, choice in enumerate(choices, 1):
            tag = ""
            if choice.voice_tag:
                style = VOICE_STYLES.get(choice.voice_tag, "white")
                tag = f" [{style}]({choice.voice_tag})[/{style}]"
            marker = " [yellow]*[/yellow]" if choice.quest_id else ""
            lines.append(f"  [{index}] {escape(choice.text)}{tag}{marker}")

        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]{self._npc_name(npc_id)}[/bold]",
                box=ROUNDED,
                border_style="cyan",
            )
        )

    def show_quests(self, game_state: GameState) -> None:
        """Quest journal."""
        quests = game_state.quests
        if not (quests.active or quests.completed or quests.failed):
            self.console.print(
                Panel("[italic]No quests yet.[/italic]", title="[bold]Journal[/bold]", box=ROUNDED)
            )
            return

        quest_table = Table(box=ROUNDED, show_header=True, header_style="bold", title="Journal")
        quest_table.add_column("Quest", style="yellow")
        quest_table.add_column("Kind")
        quest_table.add_column("Status")
        quest_table.add_column("Day", justify="right")
        quest_table.add_column("Notes")

        for quest in quests.active:
            quest_table.add_row(
                quest.id, quest.archetype, quest.stage, str(quest.day), quest.context.get("description", "")
            )
        for quest in quests.completed:
            quest_table.add_row(quest.id, quest.archetype, "[green]completed[/green]", str(quest.day), quest.outcome or "")
        for quest in quests.failed:
            quest_table.add_row(quest.id, quest.archetype, "[red]failed[/red]", str(quest.day), quest.outcome or "")

        self.console.print(quest_table)

    def show_save_slots(self, slots: list[dict[str, Any]]) -> None:
        slot_table = Table(box=ROUNDED, show_header=True, header_style="bold", title="Saves")
        slot_table.add_column("Slot", style="cyan")
        slot_table.add_column("Day", justify="right")
        slot_table.add_column("Act", justify="right")
        slot_table.add_column("Location")
        slot_table.add_column("Played", justify="right")

        for info in slots:
            if info.get("corrupted"):
                slot_table.add_row(info["slot"], "", "", "[red]corrupted[/red]", "")
            elif info.get("empty"):
                slot_table.add_row(info["slot"], "", "", "[dim]empty[/dim]", "")
            else:
                slot_table.add_row(
                    info["slot"],
                    str(info.get("day", "")),
                    str(info.get("act", "")),
                    self._location_name(info.get("location", "")),
                    format_play_time(info.get("play_time") or 0),
                )
        self.console.print(slot_table)

    def show_event(self, event: GameEvent) -> None:
        """Print a short line for narratively notable events."""
        style = NOTABLE_EVENTS.get(event.type)
        if style is None:
            return
        self.console.print(f"[{style}]» {self.describe_event(event)}[/{style}]")

    def describe_event(self, event: GameEvent) -> str:
        data = event.data
        if event.type == Events.ACT_TRANSITION:
            return f"Act {data.get('to')} begins."
        if event.type == Events.NPC_GATE_UNLOCK:
            name = data.get("gate_name") or f"gate {data.get('new_gate')}"
            return f"{self._npc_name(data.get('npc', ''))} opens up: {name}."
        if event.type == Events.QUEST_START:
            return f"New quest: {data.get('context', {}).get('description', data.get('quest_id'))}"
        if event.type == Events.QUEST_COMPLETE:
            return f"Quest completed: {data.get('quest_id')}"
        if event.type == Events.QUEST_FAIL:
            return f"Quest failed: {data.get('quest_id')}"
        if event.type == Events.TREMOR:
            return f"The ground shakes ({data.get('intensity')})."
        if event.type == Events.CURIE_MANIFESTATION:
            return "Something beneath the settlement turns toward you."
        if event.type == Events.NPC_STRESS_CRITICAL:
            return f"{self._npc_name(data.get('npc', ''))} is close to breaking."
        if event.type == Events.WEATHER_CHANGE:
            return f"The weather turns: {data.get('weather')}."
        if event.type == Events.DAY_START:
            return f"Day {data.get('day')}."
        if event.type == Events.ENDING_LOCKED:
            return f"The ending is sealed: {data.get('path')}."
        return event.type

    # -------------------------------------------------------------------------
    # Generic output & input
    # -------------------------------------------------------------------------

    def show_help(self) -> None:
        """Display help information."""
        help_text = """
[bold]MOVING:[/bold]
  [cyan]go <place>[/cyan]       - Walk to a connected location
  [cyan]wait <hours>[/cyan]     - Let time pass (default 1 hour)

[bold]PEOPLE:[/bold]
  [cyan]talk <name>[/cyan]      - Talk to someone at your location

[bold]INFORMATION:[/bold]
  [cyan]status[/cyan]           - Residents, voices and what lies beneath
  [cyan]quests[/cyan]           - Quest journal

[bold]GAME:[/bold]
  [cyan]save <slot>[/cyan]      - Save (default manual_1)
  [cyan]load <slot>[/cyan]      - Load (default manual_1)
  [cyan]slots[/cyan]            - List save slots
  [cyan]help[/cyan] / [cyan]?[/cyan]         - Show this help
  [cyan]quit[/cyan] / [cyan]q[/cyan]         - Quit
"""
        self.console.print(Panel(help_text, title="[bold]Help[/bold]", box=ROUNDED, border_style="cyan"))

    def show_error(self, message: str) -> None:
        """Display an error message."""
        self.console.print(Panel(message, title="[bold red]Error[/bold red]", box=ROUNDED, border_style="red"))

    def show_message(self, message: str, style: str = "white") -> None:
        """Display a simple message."""
        self.console.print(f"[{style}]{message}[/{style}]")

    def get_player_input(self, prompt: str = ">") -> str:
        """Get input from the player."""
        self.console.print(f"[bold green]{prompt}[/bold green] ", end="")
        try:
            return input().strip()
        except (EOFError, KeyboardInterrupt):
            return "quit"

    def confirm(self, message: str) -> bool:
        """Ask for confirmation. A closed input stream counts as yes."""
        self.console.print(f"{message} [dim](y/n)[/dim] ", end="")
        try:
            response = input().strip().lower()
        except EOFError:
            return True
        except KeyboardInterrupt:
            return False
        return response in ("y", "yes")
