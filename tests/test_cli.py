import json

from click.testing import CliRunner

from trellis import __version__
from trellis.cli import cli


def create_project(root):
    site = root / "site"
    (site / "_layouts").mkdir(parents=True)
    (site / "docs").mkdir()
    (root / "data").mkdir()
    (root / "data" / "site.yaml").write_text("title: Docs\n", encoding="utf-8")
    (site / "_layouts" / "default.html.jinja").write_text(
        "<h1>{{ site.title }}</h1>{{ page_content }}", encoding="utf-8"
    )
    (site / "index.md").write_text("# Welcome\n\nHello.", encoding="utf-8")
    (site / "docs" / "setup.md").write_text(
        "---\nowner: ops\n---\n# Setup\n\nInstall it.", encoding="utf-8"
    )
    (site / "docs" / "_wip.md").write_text("# Work in progress", encoding="utf-8")
    return root


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_build_command(tmp_path, monkeypatch):
    project = create_project(tmp_path)
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 2 pages" in result.output
    assert (project / "output" / "docs" / "setup" / "index.html").exists()

    result = CliRunner().invoke(cli, ["build", "--drafts"], catch_exceptions=False)
    assert "Built 3 pages" in result.output


def test_build_reports_errors(tmp_path, monkeypatch):
    project = create_project(tmp_path)
    (project / "site" / "bad.html.jinja").write_text("{{ oops(", encoding="utf-8")
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "File: site/bad.html.jinja" in result.output


def test_build_without_site_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Expected site directory" in result.output


def test_inspect_site(tmp_path, monkeypatch):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["inspect"], catch_exceptions=False)
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["title"] == "Docs"
    assert payload["environment"] == "development"
    assert sorted(payload["collections"]) == ["docs", "pages"]
    assert [p["path"] for p in payload["pages"]] == ["docs/setup.md", "index.md"]


def test_inspect_page(tmp_path, monkeypatch):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["inspect", "/docs/setup.md"], catch_exceptions=False)
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["title"] == "Setup"
    assert payload["url"] == "/docs/setup/"
    assert payload["owner"] == "ops"
    assert "<p>Install it.</p>" in payload["content"]


def test_inspect_drafts_and_missing_pages(tmp_path, monkeypatch):
    monkeypatch.chdir(create_project(tmp_path))
    runner = CliRunner()
    missing = runner.invoke(cli, ["inspect", "docs/_wip.md"])
    assert missing.exit_code == 1
    assert "No page found at docs/_wip.md" in missing.output

    found = runner.invoke(cli, ["inspect", "docs/_wip.md", "--drafts"])
    assert found.exit_code == 0
    assert json.loads(found.output)["draft"] is True


def test_inspect_uses_environment_variable(tmp_path, monkeypatch):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["inspect"], env={"TRELLIS_ENV": "production"})
    assert json.loads(result.output)["environment"] == "production"


def test_main_invokes_cli(monkeypatch):
    import trellis.cli as cli_mod

    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.setdefault("ran", True))
    cli_mod.main()
    assert called == {"ran": True}


def test_module_entrypoint():
    from trellis.__main__ import main

    assert callable(main)
