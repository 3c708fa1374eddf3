import orjson
import pytest
from typer.testing import CliRunner

from spacetraveling import cli

runner = CliRunner()


@pytest.fixture
def source(monkeypatch, two_page_source):
    monkeypatch.setenv("PRISMIC_API_ENDPOINT", "https://spacetraveling.cdn.prismic.io/api/v2")
    monkeypatch.delenv("SPACETRAVELING_PAGE_SIZE", raising=False)
    monkeypatch.setattr(cli, "make_client", lambda settings: two_page_source)
    return two_page_source


def test_feed_loads_more_on_confirm(source):
    result = runner.invoke(cli.app, ["feed"], input="y\n")
    assert result.exit_code == 0, result.output
    assert "Carregar mais posts?" in result.output
    assert "Post f" in result.output
    assert "6 posts" in result.output
    assert source.fetched == ["p2"]


def test_feed_stops_when_declined(source):
    result = runner.invoke(cli.app, ["feed"], input="n\n")
    assert result.exit_code == 0, result.output
    assert "Post f" not in result.output
    assert "4 posts" in result.output
    assert source.fetched == []


def test_feed_all_reports_fetch_error(source):
    source.failing.add("p2")
    result = runner.invoke(cli.app, ["feed", "--all"])
    assert result.exit_code == 1
    assert "boom on p2" in result.output


def test_export(source, tmp_path):
    out = tmp_path / "out" / "posts.jsonl"
    result = runner.invoke(cli.app, ["export", "--out", str(out)])
    assert result.exit_code == 0, result.output
    lines = out.read_bytes().splitlines()
    assert [orjson.loads(line)["id"] for line in lines] == list("abcdef")


def test_build_exit_code(source, tmp_path):
    result = runner.invoke(cli.app, ["build", "--out", str(tmp_path), "--workers", "1"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "page" / "2" / "index.html").exists()

    source.failing.add("b")
    result = runner.invoke(cli.app, ["build", "--out", str(tmp_path)])
    assert result.exit_code == 1


def test_post_prints_reading_time(source):
    result = runner.invoke(cli.app, ["post", "a"])
    assert result.exit_code == 0, result.output
    assert "Post a" in result.output
    assert "1 min" in result.output
    assert "lorem ipsum" in result.output


def test_missing_endpoint(monkeypatch):
    monkeypatch.delenv("PRISMIC_API_ENDPOINT", raising=False)
    result = runner.invoke(cli.app, ["feed"])
    assert result.exit_code == 1
