"""
Tests for battle math.
Covers damage formulas, opponent energy spend, special abilities,
initiative and terminal-state detection.
"""

import random

import pytest
from bugarena.battle_math import (
    BASIC_ATTACK_ENERGY_COST, check_battle_end, compute_basic_attack_damage,
    compute_skill_damage, regenerate_energy, resolve_opponent_attack,
    resolve_player_attack, roll_initiative, round_half_up
)
from bugarena.models import (
    BattleOutcome, CapturedInsect, Insect, Opponent, Skill, SpecialAbility, Stats
)
from tests.conftest import ScriptedRandom


def make_captured(stats: Stats, level: int = 1, name: str = "Praying Mantis") -> CapturedInsect:
    return CapturedInsect(
        id="captured-1",
        insect=Insect(id="test", name=name, stats=stats),
        level=level
    )


def make_opponent(attack: int = 40, defense: int = 50, speed: int = 50,
                  ability: str | None = None) -> Opponent:
    return Opponent(
        name="Cursed Beetle",
        stats=Stats(health=100, attack=attack, defense=defense, speed=speed),
        special_ability=SpecialAbility.parse(ability)
    )


class TestRounding:
    """Tests for half-up rounding."""

    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(64.5) == 65

    def test_below_half_rounds_down(self):
        assert round_half_up(1.49) == 1

    def test_negative_half_rounds_toward_positive(self):
        assert round_half_up(-0.5) == 0


class TestDamageFormulas:
    """Tests for skill and basic attack damage."""

    def test_basic_attack_scenario_range(self):
        """atk 100 vs def 50 at equal speed lands in [85, 90]."""
        low = compute_basic_attack_damage(100, 50, 50, 50, rng=ScriptedRandom([0.0]))
        high = compute_basic_attack_damage(100, 50, 50, 50, rng=ScriptedRandom([0.999]))

        assert low == 85
        assert high == 90

    def test_basic_attack_within_range_for_real_rng(self):
        rng = random.Random(7)
        for _ in range(200):
            assert 85 <= compute_basic_attack_damage(100, 50, 50, 50, rng=rng) <= 90

    def test_basic_attack_speed_bonus(self):
        damage = compute_basic_attack_damage(100, 50, 60, 50, rng=ScriptedRandom([0.0]))
        assert damage == 88

    def test_skill_speed_bonus_and_multiplier(self):
        damage = compute_skill_damage(100, 50, 60, 50, 1.5, rng=ScriptedRandom([0.0]))
        assert damage == 140

    def test_skill_extra_boost(self):
        damage = compute_skill_damage(100, 50, 60, 50, 1.5, extra_boost=1.5,
                                      rng=ScriptedRandom([0.0]))
        assert damage == 210

    def test_damage_floor(self):
        """Hopeless stat matchups still deal the floor of 5."""
        assert compute_basic_attack_damage(10, 200, 10, 50, rng=ScriptedRandom([0.0])) == 5
        assert compute_skill_damage(10, 200, 10, 50, 0.5, extra_boost=1.5,
                                    rng=ScriptedRandom([0.0])) == 5

    def test_damage_never_below_floor_for_real_rng(self):
        rng = random.Random(3)
        for _ in range(100):
            assert compute_skill_damage(1, 500, 1, 99, 0.1, rng=rng) >= 5


class TestPlayerAttack:
    """Tests for resolving the player's attack."""

    def test_insufficient_energy_is_noop(self):
        """energy 10 against a 15-cost skill changes nothing and draws nothing."""
        skill = Skill(id="beam", name="Beam", energy_cost=15, damage_multiplier=2.0)
        rng = ScriptedRandom([])

        result = resolve_player_attack(
            make_captured(Stats(80, 85, 60, 60)), make_opponent(), 100, 10,
            skill=skill, rng=rng
        )

        assert result.damage == 0
        assert result.energy_used == 0
        assert result.new_hp == 100
        assert not result.performed
        assert result.message == "Not enough energy! Need 15 energy."
        assert rng.draws == 0

    def test_basic_attack_needs_fifteen_energy(self):
        result = resolve_player_attack(
            make_captured(Stats(80, 85, 60, 60)), make_opponent(), 100,
            BASIC_ATTACK_ENERGY_COST - 1, rng=ScriptedRandom([])
        )
        assert result.energy_used == 0

    def test_uses_level_scaled_stats(self):
        """Level 51 doubles attack (170) and speed (120)."""
        player = make_captured(Stats(80, 85, 60, 60), level=51)

        result = resolve_player_attack(
            player, make_opponent(defense=50, speed=50), 200, 100,
            rng=ScriptedRandom([0.0])
        )

        assert result.damage == 158
        assert result.new_hp == 42
        assert result.energy_used == 15
        assert result.message == "Praying Mantis used Basic Attack! 158 damage!"

    def test_hp_clamped_at_zero(self):
        result = resolve_player_attack(
            make_captured(Stats(80, 85, 60, 60), level=51), make_opponent(), 30, 100,
            rng=ScriptedRandom([0.0])
        )
        assert result.new_hp == 0

    def test_basic_attack_ignores_extra_boost(self):
        player = make_captured(Stats(80, 85, 60, 60), level=51)
        result = resolve_player_attack(
            player, make_opponent(), 200, 100, extra_boost=1.5, rng=ScriptedRandom([0.0])
        )
        assert result.damage == 158

    def test_skill_message_and_cost(self):
        skill = Skill(id="slam", name="Heavy Slam", energy_cost=3, damage_multiplier=1.0)

        result = resolve_player_attack(
            make_captured(Stats(80, 85, 60, 60)), make_opponent(defense=0, speed=20),
            200, 50, skill=skill, rng=ScriptedRandom([0.0])
        )

        assert result.damage == 90
        assert result.energy_used == 3
        assert result.message == "Praying Mantis used Heavy Slam! 90 damage!"


class TestOpponentAttack:
    """Tests for the opponent AI attack."""

    def test_malevolent_shrine_scenario(self):
        """Base roll of 40 plus the shrine's 50 reports exactly 90."""
        player = make_captured(Stats(100, 10, 0, 10))
        opponent = make_opponent(attack=40, ability="Malevolent Shrine - Deals 50 damage")

        result = resolve_opponent_attack(
            opponent, player, 200, 100,
            special_ability=opponent.special_ability,
            rng=ScriptedRandom([0.15, 0.0])
        )

        assert result.energy_used == 20
        assert result.damage == 90
        assert result.new_hp == 110
        assert result.message == "Cursed Beetle uses Malevolent Shrine! 90 total damage!"

    def test_default_message(self):
        result = resolve_opponent_attack(
            make_opponent(attack=40), make_captured(Stats(100, 10, 0, 10)), 200, 100,
            rng=ScriptedRandom([0.15, 0.0])
        )
        assert result.message == "Cursed Beetle attacks! 40 damage! (Used 20 energy)"

    def test_uses_player_base_defense(self):
        """Level scaling doubles defense to 100, but 50 is what counts."""
        player = make_captured(Stats(100, 10, 50, 10), level=51)

        result = resolve_opponent_attack(
            make_opponent(attack=100), player, 500, 100, rng=ScriptedRandom([0.15, 0.0])
        )

        assert result.damage == 85

    def test_no_energy_is_noop(self):
        rng = ScriptedRandom([])
        result = resolve_opponent_attack(
            make_opponent(), make_captured(Stats()), 100, 14, rng=rng
        )

        assert result.energy_used == 0
        assert result.new_hp == 100
        assert result.message == "Cursed Beetle has no energy to attack!"
        assert rng.draws == 0

    @pytest.mark.parametrize("energy,draw,expected_cost", [
        (100, 0.0, 15),
        (100, 0.999, 50),
        (30, 0.999, 30),
        (15, 0.999, 15),
    ])
    def test_energy_cost_range(self, energy, draw, expected_cost):
        result = resolve_opponent_attack(
            make_opponent(), make_captured(Stats()), 100, energy,
            rng=ScriptedRandom([draw, 0.0])
        )
        assert result.energy_used == expected_cost

    def test_venom_strike_adds_twenty(self):
        opponent = make_opponent(attack=40, ability="Venom Strike - 20 damage per turn DOT")
        result = resolve_opponent_attack(
            opponent, make_captured(Stats(100, 10, 0, 10)), 200, 100,
            special_ability=opponent.special_ability, rng=ScriptedRandom([0.15, 0.0])
        )

        assert result.damage == 60
        assert result.message == "Cursed Beetle uses Venom Strike! 60 damage with poison!"

    def test_shadow_strike_multiplies_and_rounds_half_up(self):
        """43 x 1.5 = 64.5 reports as 65."""
        opponent = make_opponent(attack=40, ability="Shadow Strike - Ignores 50% defense")
        result = resolve_opponent_attack(
            opponent, make_captured(Stats(100, 10, 0, 10)), 200, 100,
            special_ability=opponent.special_ability, rng=ScriptedRandom([0.15, 0.6])
        )

        assert result.damage == 65
        assert "Shadow Strike" in result.message

    def test_unknown_ability_has_no_effect(self):
        opponent = make_opponent(attack=40, ability="Void Shield - Reduces damage by 20")
        result = resolve_opponent_attack(
            opponent, make_captured(Stats(100, 10, 0, 10)), 200, 100,
            special_ability=opponent.special_ability, rng=ScriptedRandom([0.15, 0.0])
        )
        assert result.damage == 40

    def test_extra_boost(self):
        result = resolve_opponent_attack(
            make_opponent(attack=40), make_captured(Stats(100, 10, 0, 10)), 200, 100,
            extra_boost=1.5, rng=ScriptedRandom([0.15, 0.0])
        )
        assert result.damage == 60


class TestInitiative:
    """Tests for the initiative roll."""

    def test_tie_favors_opponent(self):
        roll = roll_initiative(50, 50, rng=ScriptedRandom([0.5, 0.5]))

        assert roll.player_roll == roll.opponent_roll == 16
        assert roll.player_goes_first is False

    def test_unfloored_totals_decide(self):
        """Both display 16, but 16.5 beats 16.0."""
        roll = roll_initiative(55, 50, rng=ScriptedRandom([0.5, 0.5]))

        assert roll.player_roll == 16
        assert roll.opponent_roll == 16
        assert roll.player_total == 16.5
        assert roll.player_goes_first is True

    def test_higher_roll_goes_first(self):
        roll = roll_initiative(50, 50, rng=ScriptedRandom([0.96, 0.0]))

        assert roll.player_roll == 25
        assert roll.opponent_roll == 6
        assert roll.player_goes_first is True


class TestEnergyAndOutcome:
    """Tests for regeneration and terminal detection."""

    def test_regenerate_caps_at_max(self):
        assert regenerate_energy(95) == 100

    def test_regenerate_custom_amount(self):
        assert regenerate_energy(50, 100, 20) == 70

    def test_both_down_is_opponent_win(self):
        assert check_battle_end(0, 0) == BattleOutcome.OPPONENT_WIN

    def test_outcomes(self):
        assert check_battle_end(10, 0) == BattleOutcome.PLAYER_WIN
        assert check_battle_end(-5, 10) == BattleOutcome.OPPONENT_WIN
        assert check_battle_end(10, 10) == BattleOutcome.CONTINUE
