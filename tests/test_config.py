"""Tests for session configuration and difficulty tables."""

import json

import pytest

from maze_runner.config import GameConfig, ScoreConfig
from maze_runner.difficulty import DIFFICULTY_SETTINGS, Difficulty, settings_for
from maze_runner.enemy import BehaviorStrategy


class TestGameConfig:
    def test_defaults(self):
        cfg = GameConfig()
        assert cfg.difficulty is Difficulty.NORMAL
        assert cfg.enemy_strategy is BehaviorStrategy.PATROL_AND_CHASE
        assert cfg.move_cooldown_ms == 150
        assert cfg.history_length == 3
        assert cfg.score.collectible == 100
        assert cfg.score.time_bonus == 10

    def test_string_enums_are_coerced(self):
        cfg = GameConfig(difficulty="hard", enemy_strategy="personality-weighted-search")
        assert cfg.difficulty is Difficulty.HARD
        assert cfg.enemy_strategy is BehaviorStrategy.PERSONALITY
        assert cfg.settings.enemy_move_interval_ms == 500

    def test_unknown_difficulty(self):
        with pytest.raises(ValueError):
            GameConfig(difficulty="nightmare")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"move_cooldown_ms": -1},
            {"timer_period_ms": 0},
            {"history_length": 0},
            {"sight_range": -1},
        ],
    )
    def test_range_checks(self, kwargs):
        with pytest.raises(ValueError):
            GameConfig(**kwargs)

    def test_to_dict_flattens_enums(self):
        d = GameConfig(difficulty=Difficulty.EASY, seed=3).to_dict()
        assert d["difficulty"] == "easy"
        assert d["enemy_strategy"] == "patrol-and-chase"
        assert d["seed"] == 3
        assert d["score"]["level_complete"] == 500
        json.dumps(d)

    def test_save_and_load(self, tmp_path):
        cfg = GameConfig(
            difficulty="hard", seed=11, sight_range=7,
            score=ScoreConfig(collectible=50),
        )
        path = tmp_path / "nested" / "config.json"
        cfg.save(path)
        assert GameConfig.load(path) == cfg


class TestDifficulty:
    def test_table_values(self):
        easy, normal, hard = (DIFFICULTY_SETTINGS[d] for d in Difficulty)
        assert [s.enemy_move_interval_ms for s in (easy, normal, hard)] == [1200, 800, 500]
        assert [s.chase_chance for s in (easy, normal, hard)] == [0.2, 0.3, 0.4]
        assert [s.time_multiplier for s in (easy, normal, hard)] == [1.5, 1.0, 0.8]

    def test_harder_is_faster(self):
        easy, normal, hard = (DIFFICULTY_SETTINGS[d] for d in Difficulty)
        assert easy.enemy_move_interval_ms > normal.enemy_move_interval_ms > hard.enemy_move_interval_ms
        assert easy.chase_chance < normal.chase_chance < hard.chase_chance

    def test_to_dict_fields(self):
        assert set(settings_for("normal").to_dict()) == {
            "enemy_move_interval_ms", "chase_chance", "time_multiplier",
            "intelligence", "aggressiveness", "patience",
        }

    def test_scaled_time_limit(self):
        assert settings_for("easy").scaled_time_limit(60) == 90
        assert settings_for(Difficulty.HARD).scaled_time_limit(90) == 72
        assert settings_for("hard").scaled_time_limit(1) == 1

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            settings_for("impossible")
