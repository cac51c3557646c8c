import pytest
import yaml
from click.testing import CliRunner

from conftest import COOKIE, SITE, url
from jifty_client import cli
from jifty_client.client import JiftyClient


@pytest.fixture
def run(session, monkeypatch):
    def factory(site, cookie_name, **kwargs):
        kwargs["sid"] = "abc"
        return JiftyClient(site, cookie_name, session=session, **kwargs)

    monkeypatch.setattr(cli, "JiftyClient", factory)
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli.main, ["--site", SITE, "--cookie-name", COOKIE, *args])

    return invoke


def test_read(run, session):
    session.queue("GET", url("model/Task/id/1"), {"id": 1, "summary": "x"})

    result = run("read", "Task", "id", "1")

    assert result.exit_code == 0, result.output
    assert yaml.safe_load(result.output) == {"id": 1, "summary": "x"}


def test_create_parses_fields(run, session):
    session.queue("POST", url("model/Task"), {"success": 1})

    result = run("create", "Task", "summary=a=b", "priority=2")

    assert result.exit_code == 0, result.output
    assert session.calls[0].data == "summary=a%3Db&priority=2"


def test_bad_field_argument(run, session):
    result = run("create", "Task", "summary")
    assert result.exit_code == 2
    assert session.calls == []


def test_search_pairs(run, session):
    session.queue("GET", url("search/Task/owner/me/summary"), ["x", "y"])

    result = run("search", "Task", "owner", "me", "--column", "summary")

    assert result.exit_code == 0, result.output
    assert yaml.safe_load(result.output) == ["x", "y"]


def test_search_rejects_odd_criteria(run):
    assert run("search", "Task", "owner").exit_code == 2


def test_spec(run, session):
    session.queue("GET", url("action/CreateTask"), {"summary": {"mandatory": 1}})

    result = run("spec", "action", "CreateTask")

    assert result.exit_code == 0, result.output
    assert yaml.safe_load(result.output) == {"summary": {"mandatory": 1}}


def test_update_and_delete(run, session):
    session.queue("PUT", url("model/Task/id/1"), {"success": 1})
    session.queue("DELETE", url("model/Task/id/1"), {"success": 1})

    assert run("update", "Task", "id", "1", "summary=y").exit_code == 0
    assert run("delete", "Task", "id", "1").exit_code == 0
    assert [c.method for c in session.calls] == ["PUT", "DELETE"]


def test_site_is_required():
    result = CliRunner().invoke(
        cli.main, ["read", "Task", "id", "1"], env={"JIFTY_SITE": None, "JIFTY_COOKIE_NAME": None}
    )
    assert result.exit_code == 2


NO_CREDENTIALS = {"JIFTY_EMAIL": None, "JIFTY_PASSWORD": None, "JIFTY_SID": None}


def test_subcommand_help_needs_no_login(monkeypatch):
    def factory(*args, **kwargs):
        raise AssertionError("no client should be built for --help")

    monkeypatch.setattr(cli, "JiftyClient", factory)
    result = CliRunner().invoke(
        cli.main, ["--site", SITE, "--cookie-name", COOKIE, "read", "--help"], env=NO_CREDENTIALS
    )

    assert result.exit_code == 0, result.output
    assert "Show the MODEL record" in result.output


def test_login_failure_is_reported_cleanly():
    result = CliRunner().invoke(
        cli.main, ["--site", SITE, "--cookie-name", COOKIE, "read", "Task", "id", "1"], env=NO_CREDENTIALS
    )

    assert result.exit_code == 1
    assert "Error: Unable to log in" in result.output
    assert "Traceback" not in result.output
    assert isinstance(result.exception, SystemExit)


def test_http_error_is_reported_cleanly(run, session):
    result = run("read", "Task", "id", "404")

    assert result.exit_code == 1
    assert "Error: 404" in result.output


def test_use_config_supplies_site_and_cookie(session, monkeypatch):
    built = {}

    def factory(site, cookie_name, **kwargs):
        built.update(site=site, cookie_name=cookie_name, use_config=kwargs["use_config"])
        return JiftyClient(SITE, COOKIE, sid="abc", session=session)

    monkeypatch.setattr(cli, "JiftyClient", factory)
    session.queue("GET", url("model/Task/id/1"), {"id": 1})

    result = CliRunner().invoke(
        cli.main, ["--use-config", "read", "Task", "id", "1"],
        env={"JIFTY_SITE": None, "JIFTY_COOKIE_NAME": None},
    )

    assert result.exit_code == 0, result.output
    assert built == {"site": "", "cookie_name": "", "use_config": True}
