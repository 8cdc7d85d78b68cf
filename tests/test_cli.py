from click.testing import CliRunner

from stheno import __version__
from stheno.cli import cli


def create_project(root):
    site = root / "site"
    site.mkdir()
    (site / "default.template").write_text("<html>{block:}</html>")
    (site / "index.md").write_text("---\ntitle: Home\n---\nHello\n")
    (site / "index.de.md").write_text("---\ntitle: Start\n---\nHallo\n")
    return root


def test_cli_build(monkeypatch, tmp_path):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 2 files" in result.output
    assert (tmp_path / "output" / "index.de.html").exists()


def test_cli_build_reports_errors(monkeypatch, tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "a.html").write_text("A")
    (site / "a.md").write_text("B")
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "site/a.md" in result.output


def test_cli_build_without_site_directory(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code != 0
    assert "Expected site directory" in result.output


def test_cli_tree(monkeypatch, tmp_path):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["tree"], catch_exceptions=False)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "/ -> /"
    assert "  /index.de.html [de] -> /index.de.html" in lines
    assert "  /index.html -> /index.html" in lines


def test_cli_version_and_verbose(monkeypatch, tmp_path):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["--version"])
    assert __version__ in result.output

    result = runner.invoke(cli, ["-v", "tree"], catch_exceptions=False)
    assert result.exit_code == 0


def test_module_main_entrypoint():
    from stheno.__main__ import main

    assert callable(main)
