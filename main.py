#!/usr/bin/env python3
"""
ASHFALL - narrative rule engine, played from the terminal.

Walk the settlement, talk to its residents and watch the rules react.
"""

import logging
import os
import random
from typing import Optional

from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape

from ashfall import config
from ashfall.dialogue import ChoiceSelector, apply_choice
from ashfall.engine import DialogueResult, RuleEngine
from ashfall.events import Events
from ashfall.logging import SessionLogger
from ashfall.persistence import SaveManager
from ashfall.quests import QuestTriggerMatcher
from ashfall.state import NarrativeRules
from ashfall.ui import TerminalUI


class GameSession:
    """Wires the engine, quest matcher, choice selector, saves and UI together."""

    def __init__(
        self,
        data_dir: Optional[str] = None,
        save_dir: str = config.SAVES_DIR,
        log_dir: Optional[str] = config.LOGS_DIR,
        seed: Optional[int] = None,
        ui: Optional[TerminalUI] = None,
    ):
        rules = NarrativeRules.load_from_directory(data_dir) if data_dir else NarrativeRules.default()

        self.engine = RuleEngine(rules=rules, rng=random.Random(seed))
        self.matcher = QuestTriggerMatcher(self.engine)
        self.selector = ChoiceSelector(rules)
        self.saves = SaveManager(self.engine, save_dir=save_dir)
        self.ui = ui or TerminalUI(rules)

        self.session_logger: Optional[SessionLogger] = None
        if log_dir:
            self.session_logger = SessionLogger(log_dir=log_dir)
            self.session_logger.attach(self.engine.events)

        self.engine.events.on(Events.WILDCARD, self.ui.show_event)

    @property
    def rules(self) -> NarrativeRules:
        return self.engine.rules

    # -------------------------------------------------------------------------
    # Name resolution
    # -------------------------------------------------------------------------

    def _find_location(self, name: str) -> Optional[str]:
        wanted = name.lower().replace(" ", "_")
        for location_id, location in self.rules.locations.items():
            if wanted in (location_id, location.name.lower().replace(" ", "_")):
                return location_id
        return None

    def _find_npc(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for npc_id, npc in self.rules.npcs.items():
            if wanted in (npc_id, npc.name.lower()):
                return npc_id
        return None

    def _npcs_here(self) -> list[str]:
        here = self.engine.state.player.location
        return [npc_id for npc_id, npc in self.engine.state.npcs.items() if npc.location == here]

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def process_player_input(self, player_input: str) -> bool:
        """
        Run one command.
        Returns False if the session should end, True otherwise.
        """
        parts = player_input.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0].lower()
        argument = parts[1] if len(parts) > 1 else ""

        if command in ("quit", "q", "exit"):
            return not self.ui.confirm("Are you sure you want to quit?")

        if command in ("help", "?"):
            self.ui.show_help()
        elif command in ("status", "stats"):
            self.ui.show_full_status(self.engine.state, self.engine.get_tension_description())
        elif command in ("quests", "journal", "j"):
            self.ui.show_quests(self.engine.state)
        elif command in ("go", "walk"):
            self.go(argument)
        elif command in ("talk", "t"):
            self.talk(argument)
        elif command in ("wait", "w"):
            self.wait(argument)
        elif command == "save":
            self.save(argument or "manual_1")
        elif command == "load":
            self.load(argument or "manual_1")
        elif command == "slots":
            self.ui.show_save_slots(self.saves.get_save_slots())
        else:
            self.ui.show_message(f"Unknown command '{escape(command)}'. Type 'help'.", "yellow")
        return True

    def go(self, name: str) -> None:
        current = self.rules.get_location(self.engine.state.player.location)
        if not name:
            exits = ", ".join(self.rules.locations[c].name for c in current.connections) if current else ""
            self.ui.show_message(f"Go where? From here: {exits}", "yellow")
            return

        location_id = self._find_location(name)
        if location_id is None:
            self.ui.show_error(f"There is no place called '{escape(name)}'.")
            return
        if current is not None and location_id not in current.connections:
            self.ui.show_error(f"You can't reach {self.rules.locations[location_id].name} from here.")
            return

        self.engine.move_player(location_id)
        self.engine.advance_time(1)
        here = ", ".join(self.rules.npcs[n].name for n in self._npcs_here())
        self.ui.show_message(
            f"You arrive at {self.rules.locations[location_id].name}." + (f" Here: {here}." if here else ""),
            "cyan",
        )

    def wait(self, argument: str) -> None:
        try:
            hours = int(argument) if argument else 1
        except ValueError:
            self.ui.show_error(f"'{escape(argument)}' is not a number of hours.")
            return
        if hours <= 0:
            self.ui.show_error("Time only moves forward.")
            return
        self.engine.advance_time(hours)

    def talk(self, name: str) -> None:
        present = self._npcs_here()
        npc_id = self._find_npc(name) if name else (present[0] if len(present) == 1 else None)
        if npc_id is None:
            self.ui.show_error("Talk to whom?")
            return
        if npc_id not in present:
            self.ui.show_error(f"{self.rules.npcs[npc_id].name} isn't here.")
            return

        self.engine.start_dialogue(npc_id)
        while self.engine.current_dialogue_npc == npc_id:
            choices = self.selector.select(npc_id, self.engine.state)
            self.ui.show_choices(npc_id, choices)

            picked = self._pick(choices)
            if picked is None:
                self.engine.end_dialogue(npc_id)
                break

            apply_choice(self.engine, npc_id, picked)
            if self.engine.current_dialogue_npc == npc_id:
                self.engine.process_dialogue_result(npc_id, DialogueResult())

    def _pick(self, choices):
        answer = self.ui.get_player_input("choose >")
        if answer == "quit":
            return None
        try:
            index = int(answer) - 1
        except ValueError:
            return choices[-1]
        if 0 <= index < len(choices):
            return choices[index]
        return choices[-1]

    def save(self, slot: str) -> None:
        result = self.saves.save(slot)
        if result.success:
            self.ui.show_message(f"Game saved to {slot}", "green")
        else:
            self.ui.show_error(f"Failed to save game: {result.error}")

    def load(self, slot: str) -> None:
        result = self.saves.load(slot)
        if result.success:
            self.ui.show_message(f"Game loaded from {slot}", "green")
        else:
            self.ui.show_error(f"Failed to load game: {result.error}")

    def run(self) -> None:
        """Main loop."""
        self.ui.clear_screen()
        self.ui.show_title_screen()
        self.engine.reset()

        running = True
        while running:
            self.ui.show_status_bar(self.engine.state)
            player_input = self.ui.get_player_input()
            if not player_input:
                continue
            running = self.process_player_input(player_input)

        self.saves.auto_save()
        self.ui.show_message("\nThe ash keeps falling. Goodbye.", "cyan")


def main():
    """Entry point."""
    import argparse

    load_dotenv()

    parser = argparse.ArgumentParser(description="ASHFALL - narrative rule engine")
    parser.add_argument(
        "--data-dir",
        default=os.getenv("ASHFALL_DATA_DIR"),
        help="Directory containing rule tables (defaults to the bundled ones)"
    )
    parser.add_argument(
        "--save-dir",
        default=os.getenv("ASHFALL_SAVE_DIR", config.SAVES_DIR),
        help="Directory for save slots"
    )
    parser.add_argument(
        "--log-dir",
        default=os.getenv("ASHFALL_LOG_DIR", config.LOGS_DIR),
        help="Directory for session event logs"
    )
    parser.add_argument(
        "--no-session-log",
        action="store_true",
        help="Do not write a session event log"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=int(os.environ["ASHFALL_SEED"]) if os.getenv("ASHFALL_SEED") else None,
        help="Seed for tremors, weather and manifestations"
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("ASHFALL_LOG_LEVEL", "WARNING"),
        help="Python logging level"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )

    try:
        session = GameSession(
            data_dir=args.data_dir,
            save_dir=args.save_dir,
            log_dir=None if args.no_session_log else args.log_dir,
            seed=args.seed,
        )
        session.run()
    except KeyboardInterrupt:
        print("\n\nGame interrupted. Goodbye!")
    except Exception as e:
        print(f"\nFatal error: {e}")
        raise


if __name__ == "__main__":
    main()
