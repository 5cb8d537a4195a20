"""Tests for the maze-runner CLI."""

from maze_runner.cli import main


class TestGenerate:
    def test_prints_maze(self, capsys):
        assert main(["generate", "--seed", "1", "--collectibles", "2"]) == 0
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0] == "#" * 9
        assert lines[1].startswith("#P")
        assert "9x9, 2 collectibles, solvable=True" in out

    def test_loops_and_prune(self, capsys):
        code = main([
            "generate", "--seed", "3", "--width", "13", "--height", "11",
            "--loops", "4", "--prune",
        ])
        assert code == 0
        assert "13x11" in capsys.readouterr().out

    def test_rejects_out_of_range_size(self, capsys):
        assert main(["generate", "--width", "40"]) == 2
        assert capsys.readouterr().out == ""

    def test_seed_is_reproducible(self, capsys):
        main(["generate", "--seed", "21"])
        first = capsys.readouterr().out
        main(["generate", "--seed", "21"])
        assert capsys.readouterr().out == first


class TestValidate:
    def test_bundled_levels_ok(self, capsys):
        assert main(["validate"]) == 0
        out = capsys.readouterr().out
        assert "Level 1 (Getting Started): ok" in out
        assert "Level 3 (Labyrinth Master): ok" in out


class TestNoCommand:
    def test_prints_help(self, capsys):
        assert main([]) == 1
        assert "maze-runner" in capsys.readouterr().out
