"""
Test CLI Entrypoint

Subcommand wiring and exit codes.
"""
import pytest

from konnect import cli, config, pipeline


class TestCli:
    """Test suite for `konnect <stage>` exit codes."""

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_rejects_unknown_category(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["fetch", "--categories", "vaults"])

    def test_parser_defaults(self):
        args = cli.build_parser().parse_args(["merge"])
        assert args.grid_size == config.GRID_SIZE
        assert args.h3_res is None
        assert args.match_names is False

    def test_missing_inputs_exit_1(self, tmp_path):
        assert cli.main(["--data-dir", str(tmp_path), "build"]) == 1

    def test_success_exit_0(self, tmp_path, write_collection, make_location):
        write_collection(tmp_path / config.DETAILED_FILE, [make_location("jcc", -74.0, 40.0, name="JCC")])
        assert cli.main(["--data-dir", str(tmp_path), "build"]) == 0
        assert (tmp_path / config.COMBINED_FILE).exists()

    def test_merge_on_empty_dir(self, tmp_path):
        assert cli.main(["--data-dir", str(tmp_path), "merge", "--grid-size", "0.5"]) == 0
        assert (tmp_path / config.POINTS_FILE).exists()

    def test_fatal_error_exit_2(self, tmp_path, monkeypatch):
        def boom(data_dir):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline, "run_population", boom)
        assert cli.main(["--data-dir", str(tmp_path), "population"]) == 2

    def test_interrupt_exit_130(self, tmp_path, monkeypatch):
        def interrupted(data_dir):
            raise KeyboardInterrupt

        monkeypatch.setattr(pipeline, "run_population", interrupted)
        assert cli.main(["--data-dir", str(tmp_path), "population"]) == 130
