#!/usr/bin/env python3
"""
Bug Arena - Main Entry Point
Text front end for stage and event battles.
"""

import logging
import os
import sys
import time
from pathlib import Path

from bugarena.core import GameEngine
from bugarena.errors import BugArenaError
from bugarena.models import CapturedInsect, Skill, TurnOwner


DEFAULT_SAVE_PATH = Path("save.json")


def skill_label(skill: Skill) -> str:
    """Menu text for a skill, with its listed effects."""
    label = f"{skill.name} ({skill.energy_cost} energy, x{skill.damage_multiplier})"
    effects = skill.effects.describe()
    if effects:
        label += " [" + ", ".join(effects) + "]"
    return label


class TextGameUI:
    """Simple text-based UI for the battle engine."""

    def __init__(self, save_path: Path = DEFAULT_SAVE_PATH):
        self.engine = GameEngine.with_save_file(save_path)
        self.engine.set_message_callback(self.display_messages)
        self.engine.load_content()
        self.delays = self.engine.content.config.delays

    def display_messages(self, messages: list[str]) -> None:
        """Display messages to the console."""
        for msg in messages:
            print(msg)

    def choose(self, labels: list[str], allow_back: bool = True) -> int | None:
        """Show a numbered list and return the chosen index, or None for back."""
        for i, label in enumerate(labels):
            print(f"  {i + 1}. {label}")
        if allow_back:
            print("  0. Back")

        while True:
            try:
                choice = int(input("\n> ").strip())
            except ValueError:
                print("Please enter a number.")
                continue
            if allow_back and choice == 0:
                return None
            if 1 <= choice <= len(labels):
                return choice - 1
            print("Invalid choice.")

    def display_profile(self) -> None:
        profile = self.engine.get_profile()
        progression = self.engine.progression
        potions = progression.get_potions()

        print("\n" + "=" * 40)
        print(f"{profile.avatar_emoji} {profile.username}  Rank {profile.rank}")
        print(f"Captures: {profile.total_captures}  Coins: {profile.coins}  Rolls: {progression.get_rolls()}")
        print(f"Potions: luck {potions['luck']}  xp {potions['xp']}  energy {potions['energy']}")
        print(f"Battles: {profile.battles_won} won / {profile.battles_lost} lost")
        print("=" * 40)

        history = progression.get_battle_history()[:5]
        if history:
            print("Recent battles:")
            for record in history:
                result = "WIN " if record.won else "LOSS"
                print(f"  {result} vs {record.opponent_name} with {record.combatant_used} (+{record.xp_earned} XP)")

    def choose_insect(self) -> CapturedInsect | None:
        collection = self.engine.get_collection()
        if not collection:
            print("\nYour collection is empty. Capture an insect first.")
            return None

        print("\nChoose your insect:")
        labels = []
        for captured in collection:
            stats = captured.scaled_stats()
            labels.append(
                f"{captured.insect.emoji} {captured.name} Lv.{captured.level} "
                f"(HP {stats.health} ATK {stats.attack} DEF {stats.defense} SPD {stats.speed})"
            )
        index = self.choose(labels)
        return None if index is None else collection[index]

    def capture_menu(self) -> None:
        """Pick an insect from the encyclopedia and add it to the collection."""
        insects = list(self.engine.content.insects.values())
        print("\nEncyclopedia:")
        index = self.choose([f"{i.emoji} {i.name} [{i.rarity.value}]" for i in insects])
        if index is not None:
            self.engine.capture(insects[index].id, location="Encyclopedia")

    def stage_menu(self) -> None:
        stages = self.engine.get_unlocked_stages()
        print("\nUnlocked stages:")
        index = self.choose([
            f"{world.emoji} {world.name} - Stage {stage.id}: {stage.name} "
            f"(difficulty {stage.difficulty}, {stage.opponent_count} opponent(s))"
            for world, stage in stages
        ])
        if index is None:
            return

        world, stage = stages[index]
        captured = self.choose_insect()
        if captured is None:
            return

        print("\nSearching for an opponent...")
        time.sleep(self.delays.matching)
        session = self.engine.start_stage_battle(world.id, stage.id, captured.id)
        self.battle_loop(session)

    def event_menu(self) -> None:
        events = self.engine.get_active_events()
        if not events:
            print("\nNo events are running today.")
            return

        options = [(event, challenge) for event in events for challenge in event.challenges]
        print("\nEvent challenges:")
        index = self.choose([
            f"{event.emoji} {event.name} - {challenge.name} ({challenge.requirement})"
            for event, challenge in options
        ])
        if index is None:
            return

        event, challenge = options[index]
        captured = self.choose_insect()
        if captured is None:
            return

        time.sleep(self.delays.event_start)
        try:
            session = self.engine.start_event_battle(event.id, challenge.id, captured.id)
        except BugArenaError as e:
            print(f"\n{e}")
            return
        self.battle_loop(session)

    def display_battle_status(self, session) -> None:
        state = session.state
        opponent = session.current_opponent
        print(
            f"\n[{session.player.name}] HP {state.player_hp}/{state.player_max_hp} "
            f"EN {state.player_energy}"
        )
        print(
            f"[{opponent.emoji} {opponent.name} {state.current_opponent_index + 1}/{len(session.opponents)}] "
            f"HP {state.opponent_hp}/{state.opponent_max_hp} EN {state.opponent_energy}"
        )

    def battle_loop(self, session) -> None:
        """Play one battle, then offer retry or exit."""
        time.sleep(self.delays.initiative_display)

        while True:
            while not session.is_over:
                if session.state.turn_owner == TurnOwner.OPPONENT:
                    time.sleep(self.delays.opponent_turn)
                    self.engine.advance_turn()
                    time.sleep(self.delays.turn_handover)
                    continue

                self.display_battle_status(session)
                skills = session.available_skills()
                labels = ["Basic Attack (15 energy)"] + [
                    skill_label(skill) for skill in skills
                ]
                index = self.choose(labels, allow_back=False)
                skill_id = None if index == 0 else skills[index - 1].id
                self.engine.attack(skill_id)
                time.sleep(self.delays.action)

            print("\nVICTORY!" if session.player_won else "\nDEFEAT...")
            choice = self.choose(["Retry", "Exit"], allow_back=False)
            if choice == 1:
                self.engine.exit_battle()
                return

            captured = self.choose_insect()
            if captured is None:
                self.engine.exit_battle()
                return
            session = self.engine.retry_battle(captured.id)
            time.sleep(self.delays.initiative_display)

    def run(self) -> None:
        """Run the main menu loop."""
        while True:
            self.display_profile()
            choice = self.choose(
                ["Stage battle", "Event battle", "Capture insect", "Quit"], allow_back=False
            )
            if choice == 0:
                self.stage_menu()
            elif choice == 1:
                self.event_menu()
            elif choice == 2:
                self.capture_menu()
            else:
                print("\nGoodbye!")
                break


def main():
    """Main entry point."""
    logging.basicConfig(
        level=os.environ.get("BUGARENA_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    save_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SAVE_PATH
    ui = TextGameUI(save_path)
    try:
        ui.run()
    except (KeyboardInterrupt, EOFError):
        print("\nGoodbye!")


if __name__ == "__main__":
    main()
