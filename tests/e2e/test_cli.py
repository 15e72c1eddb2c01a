# ABOUTME: End-to-end tests for the nubayrah CLI root group and read-only commands.
# ABOUTME: Validates --version, --help, inspect output, and error exits.

from pathlib import Path

from click.testing import CliRunner

from nubayrah.cli import cli


class TestRootGroup:
    """Tests for the root command group."""

    def test_help_lists_commands(self) -> None:
        """The top-level help lists every subcommand."""
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("import", "inspect", "ls", "info", "edit", "cover", "rm"):
            assert command in result.output

    def test_version(self) -> None:
        """--version prints the package version."""
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "version" in result.output.lower()

    def test_verbose_flag_is_accepted(self, moby_dick_epub: Path) -> None:
        """-v is accepted before a subcommand."""
        result = CliRunner().invoke(cli, ["-v", "inspect", str(moby_dick_epub)])
        assert result.exit_code == 0


class TestInspectCommand:
    """Tests for nubayrah inspect."""

    def test_shows_metadata(self, moby_dick_epub: Path) -> None:
        """inspect prints the extracted title and author."""
        result = CliRunner().invoke(cli, ["inspect", str(moby_dick_epub)])
        assert result.exit_code == 0
        assert "Herman Melville" in result.output
        assert "Melville, Herman" in result.output
        assert "Sea stories" in result.output

    def test_shows_series_and_missing_cover(self, stone_age_epub: Path) -> None:
        """inspect shows the series position and a placeholder for the missing cover."""
        result = CliRunner().invoke(cli, ["inspect", str(stone_age_epub)])
        assert result.exit_code == 0
        assert "American Archaeology #2" in result.output
        assert "none" in result.output

    def test_shows_cover_path(self, moby_dick_epub: Path) -> None:
        """inspect shows the archive path of the cover."""
        result = CliRunner().invoke(cli, ["inspect", str(moby_dick_epub)])
        assert "OEBPS/images/cover.png" in result.output

    def test_corrupt_file_exits_1(self, corrupt_epub: Path) -> None:
        """A file that is not an EPUB exits with status 1."""
        result = CliRunner().invoke(cli, ["inspect", str(corrupt_epub)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_file_is_usage_error(self, tmp_path: Path) -> None:
        """A path that does not exist is a usage error."""
        result = CliRunner().invoke(cli, ["inspect", str(tmp_path / "nope.epub")])
        assert result.exit_code == 2
