"""Tests for the game/level state machine."""

from dataclasses import replace

import pytest

from maze_runner.config import GameConfig
from maze_runner.events import EventType
from maze_runner.grid import CellType, Position
from maze_runner.level import LEVELS
from maze_runner.session import GamePhase, GameSession

UP, DOWN, LEFT, RIGHT = (0, -1), (0, 1), (-1, 0), (1, 0)

# Level 1: collectible at (7, 2), exit at (7, 7).
LEVEL_ONE_ROUTE = [
    RIGHT, RIGHT, DOWN, DOWN, RIGHT, RIGHT, UP, UP, RIGHT, RIGHT, DOWN,
    DOWN, DOWN, DOWN, DOWN, DOWN,
]


@pytest.fixture()
def session():
    return GameSession(config=GameConfig(move_cooldown_ms=0, seed=1))


def play(session, moves):
    for dx, dy in moves:
        assert session.move(dx, dy)


def event_types(session):
    return [e.type for e in session.events.history]


class TestStartLevel:
    def test_starts_in_menu(self, session):
        assert session.phase is GamePhase.MENU
        assert session.snapshot()["grid"] is None

    def test_start_game(self, session):
        assert session.start_game()
        assert session.phase is GamePhase.PLAYING
        assert session.current_level_index == 0
        assert session.player == Position(1, 1)
        assert session.time_remaining == 60
        assert session.collected == 0
        assert EventType.LEVEL_START in event_types(session)

    def test_difficulty_scales_time(self):
        session = GameSession(config=GameConfig(difficulty="easy"))
        session.start_level(1)
        assert session.time_limit == 135

    def test_enemies_spawn_at_origins(self, session):
        session.start_level(1)
        assert session.enemies.positions() == list(LEVELS[1].enemy_positions)

    def test_out_of_range_index(self, session):
        assert not session.start_level(7)
        assert session.phase is GamePhase.MENU
        assert session.last_errors == ["Level index 7 out of range"]

    def test_invalid_level_goes_to_menu(self):
        broken = replace(LEVELS[0], collectibles=4)
        session = GameSession([broken])
        assert not session.start_game()
        assert session.phase is GamePhase.MENU
        assert any("requires 4 collectibles" in e for e in session.last_errors)

    def test_empty_level_list(self):
        with pytest.raises(ValueError):
            GameSession([])

    def test_canonical_level_untouched(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE[:11])
        assert session.grid.get(Position(7, 2)) == CellType.PATH
        assert LEVELS[0].grid.get(Position(7, 2)) == CellType.COLLECTIBLE


class TestMovement:
    def test_blocked_by_wall(self, session):
        session.start_game()
        assert not session.move(*UP)
        assert session.player == Position(1, 1)

    def test_rejects_non_unit_vectors(self, session):
        session.start_game()
        assert not session.move(1, 1)
        assert not session.move(2, 0)
        assert not session.move(0, 0)

    def test_ignored_outside_play(self, session):
        assert not session.move(*RIGHT)

    def test_cooldown(self):
        session = GameSession(config=GameConfig(move_cooldown_ms=150))
        session.start_game()
        assert session.move(*RIGHT)
        assert not session.move(*RIGHT)
        session.advance(149)
        assert not session.move(*RIGHT)
        session.advance(1)
        assert session.move(*RIGHT)
        assert session.player == Position(3, 1)

    def test_collect(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE[:11])
        assert session.player == Position(7, 2)
        assert session.collected == 1
        assert session.score == 100
        assert session.can_exit_level()
        assert EventType.COLLECT in event_types(session)

    def test_exit_without_collectibles_is_ignored(self):
        session = GameSession(config=GameConfig(move_cooldown_ms=0))
        session.start_level(1)
        # Walk onto the level 2 exit from (11, 8) without collecting anything.
        session.player = Position(11, 8)
        assert session.move(*DOWN)
        assert session.player == Position(11, 9)
        assert session.phase is GamePhase.PLAYING


class TestWinAndProgress:
    def test_win_level_one(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE)
        assert session.phase is GamePhase.WON
        stats = session.level_stats
        assert stats.score == 100
        assert stats.time_bonus == session.time_remaining * 10
        assert stats.total == 100 + session.time_remaining * 10
        assert stats.perfect
        assert event_types(session)[-1] is EventType.LEVEL_COMPLETE

    def test_no_moves_after_win(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE)
        assert not session.move(*UP)
        assert session.advance(5000) == 0

    def test_advance_banks_total(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE)
        total = session.level_stats.total
        assert session.advance_to_next_level()
        assert session.total_score == total
        assert session.current_level_index == 1
        assert session.phase is GamePhase.PLAYING
        assert session.score == 0

    def test_advance_requires_win(self, session):
        session.start_game()
        assert not session.advance_to_next_level()

    def test_last_level_completes_run(self):
        session = GameSession([LEVELS[0]], GameConfig(move_cooldown_ms=0))
        session.start_game()
        play(session, LEVEL_ONE_ROUTE)
        assert session.advance_to_next_level()
        assert session.phase is GamePhase.COMPLETED
        final = session.final_stats()
        assert final.levels_completed == 1
        assert final.total_score == session.total_score
        assert not session.reset()


class TestLosing:
    def test_timeout(self):
        short = replace(LEVELS[0], time_limit=5)
        session = GameSession([short])
        session.start_game()
        for _ in range(4):
            session.advance(1000)
        assert session.phase is GamePhase.PLAYING
        assert session.time_remaining == 1
        session.advance(1000)
        assert session.phase is GamePhase.LOST
        assert session.time_remaining == 0
        last = session.events.history[-1]
        assert last.type is EventType.GAME_OVER
        assert last.data["reason"] == "timeout"

    def test_caught_by_moving_into_enemy(self, session):
        session.start_level(1)
        session.enemies.enemies[0].position = Position(2, 1)
        assert session.move(*RIGHT)
        assert session.phase is GamePhase.LOST
        types = event_types(session)
        assert types[-2:] == [EventType.ENEMY_CONTACT, EventType.GAME_OVER]

    def test_caught_on_enemy_tick(self):
        session = GameSession(config=GameConfig(seed=3))
        session.start_level(1)
        enemy = session.enemies.enemies[0]
        # (11, 1) is a dead end whose only neighbour is the player's cell.
        enemy.position = Position(11, 1)
        session.enemies.enemies = [enemy]
        session.player = Position(11, 2)
        session.advance(session.settings.enemy_move_interval_ms)
        assert enemy.position == Position(11, 2)
        assert session.phase is GamePhase.LOST

    def test_clock_stops_after_loss(self):
        session = GameSession([replace(LEVELS[0], time_limit=1)])
        session.start_game()
        session.advance(1000)
        assert session.phase is GamePhase.LOST
        assert session.scheduler.active_jobs == 0


class TestPauseAndReset:
    def test_pause_freezes_timer(self, session):
        session.start_game()
        session.advance(3000)
        assert session.pause()
        frozen = session.time_remaining
        for _ in range(10):
            session.advance(1000)
        assert session.time_remaining == frozen
        assert not session.move(*RIGHT)
        assert session.resume()
        session.advance(1000)
        assert session.time_remaining == frozen - 1

    def test_toggle_pause(self, session):
        session.start_game()
        assert session.toggle_pause()
        assert session.phase is GamePhase.PAUSED
        assert session.toggle_pause()
        assert session.phase is GamePhase.PLAYING

    def test_pause_only_while_playing(self, session):
        assert not session.pause()
        assert not session.resume()

    def test_reset_restores_level(self, session):
        session.start_game()
        play(session, LEVEL_ONE_ROUTE[:11])
        session.advance(5000)
        assert session.reset()
        assert session.player == Position(1, 1)
        assert session.collected == 0
        assert session.score == 0
        assert session.time_remaining == 60
        assert session.grid.get(Position(7, 2)) == CellType.COLLECTIBLE
        assert EventType.LEVEL_RESET in event_types(session)

    def test_reset_after_loss(self):
        session = GameSession([replace(LEVELS[0], time_limit=1)])
        session.start_game()
        session.advance(1000)
        assert session.reset()
        assert session.phase is GamePhase.PLAYING

    def test_reset_from_menu_rejected(self, session):
        assert not session.reset()

    def test_return_to_menu(self, session):
        session.start_level(1)
        session.return_to_menu()
        assert session.phase is GamePhase.MENU
        assert session.enemies.enemies == []
        assert session.scheduler.active_jobs == 0
        assert session.advance(10000) == 0


class TestSnapshot:
    def test_snapshot_keys(self, session):
        session.start_level(1)
        snap = session.snapshot()
        assert snap["phase"] == "playing"
        assert snap["current_level_index"] == 1
        assert snap["player_position"] == [1, 1]
        assert snap["enemy_positions"] == [[6, 3], [9, 7]]
        assert snap["required_collectibles"] == 3
        assert snap["can_exit"] is False
        assert snap["difficulty"] == "normal"
        assert snap["grid"]["width"] == 13
        assert snap["level"] == {"id": 2, "name": "The Chase"}

    def test_enemy_ticks_move_enemies(self):
        session = GameSession(config=GameConfig(seed=5))
        session.start_level(1)
        before = session.enemies.positions()
        session.advance(session.settings.enemy_move_interval_ms)
        assert session.enemies.positions() != before
