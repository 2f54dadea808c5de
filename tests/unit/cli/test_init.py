"""Tests for multichat init."""

from __future__ import annotations

import sqlite3

import yaml
from typer.testing import CliRunner

from multichat import config as config_module
from multichat.cli.main import app
from multichat.config import load_config

runner = CliRunner()


def test_init_creates_database_config_and_global_config(tmp_path):
    target = tmp_path / "site"
    result = runner.invoke(
        app, ["init", str(target), "--sitemap", "https://acme.test/sitemap.xml"]
    )
    assert result.exit_code == 0, result.output

    conn = sqlite3.connect(target / ".multichat.db")
    tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()
    assert {"transients", "faqs"} <= tables

    data = yaml.safe_load((target / "multichat.yaml").read_text(encoding="utf-8"))
    assert data["site"]["sitemap_url"] == "https://acme.test/sitemap.xml"
    assert load_config(project_dir=target).site.sitemap_url == "https://acme.test/sitemap.xml"

    global_path = config_module._GLOBAL_CONFIG_PATH
    assert global_path.exists()
    assert oct(global_path.stat().st_mode)[-3:] == "600"


def test_init_without_sitemap_writes_commented_placeholder(tmp_path):
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert load_config(project_dir=tmp_path).site.sitemap_url is None


def test_init_keeps_existing_project_config(tmp_path):
    (tmp_path / "multichat.yaml").write_text("crawl:\n  delay: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["init", str(tmp_path), "--sitemap", "https://acme.test/s.xml"])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert (tmp_path / "multichat.yaml").read_text(encoding="utf-8") == "crawl:\n  delay: 0\n"


def test_init_rejects_non_http_sitemap(tmp_path):
    result = runner.invoke(app, ["init", str(tmp_path), "--sitemap", "ftp://acme.test/s.xml"])
    assert result.exit_code == 1
    assert not (tmp_path / ".multichat.db").exists()
