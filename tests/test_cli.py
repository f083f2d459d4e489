"""Tests for the `fly` command line entry point."""

import textwrap

import pytest
import yaml
from click.testing import CliRunner

from flightplan.cli import load_plan, main
from flightplan.plan import Flightplan


LOCAL_PLAN = """
from flightplan import Flightplan

plan = Flightplan()

@plan.local
def build(local):
    local.echo("building")
"""

REMOTE_PLAN = """
from flightplan import Flightplan

plan = Flightplan()

@plan.local
def build(local):
    local.echo("building")

@plan.remote
def deploy(remote):
    remote.exec("deploy as " + remote.host.get("username", "nobody"))
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write_plan(tmp_path):
    def _write(source, name="flightplan.py"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(source))
        return path
    return _write


@pytest.fixture
def hosts_config(tmp_path):
    path = tmp_path / "hosts.yaml"
    path.write_text(yaml.dump({
        "destinations": {
            "staging": [{"host": "s1", "username": "deploy"}, {"host": "s2", "username": "deploy"}],
        }
    }))
    return path


def test_local_plan_succeeds(runner, write_plan):
    plan_path = write_plan(LOCAL_PLAN)
    result = runner.invoke(main, ["--plan", str(plan_path)])
    assert result.exit_code == 0, result.output
    assert "Flightplan finished" in result.output


def test_remote_plan_with_config_and_username(runner, write_plan, hosts_config, fake_remote):
    plan_path = write_plan(REMOTE_PLAN)
    result = runner.invoke(
        main,
        ["staging", "--plan", str(plan_path), "--config", str(hosts_config), "--username", "admin"],
    )
    assert result.exit_code == 0, result.output
    assert sorted(fake_remote) == [("s1", "deploy as admin"), ("s2", "deploy as admin")]


def test_unknown_destination_exits_one(runner, write_plan, hosts_config, fake_remote):
    plan_path = write_plan(REMOTE_PLAN)
    result = runner.invoke(main, ["production", "--plan", str(plan_path), "--config", str(hosts_config)])
    assert result.exit_code == 1
    assert "not a valid destination" in result.output
    assert fake_remote == []


def test_config_host_without_name_exits_before_flights(runner, write_plan, tmp_path, fake_remote):
    marker = tmp_path / "built"
    plan_path = write_plan(REMOTE_PLAN.replace('local.echo("building")', f'local.exec("touch {marker}")'))
    config_path = tmp_path / "hosts.yaml"
    config_path.write_text(yaml.dump({"destinations": {"staging": [{"username": "deploy"}]}}))

    result = runner.invoke(main, ["staging", "--plan", str(plan_path), "--config", str(config_path)])

    assert result.exit_code == 1
    assert "without 'host'" in result.output
    assert not marker.exists()
    assert fake_remote == []


def test_failing_flight_exits_one(runner, write_plan):
    plan_path = write_plan("""
        from flightplan import Flightplan

        plan = Flightplan()

        @plan.local
        def broken(local):
            local.exec("false")
    """)
    result = runner.invoke(main, ["--plan", str(plan_path)])
    assert result.exit_code == 1
    assert "Flightplan aborted" in result.output


def test_missing_plan_file(runner, tmp_path):
    result = runner.invoke(main, ["--plan", str(tmp_path / "missing.py")])
    assert result.exit_code == 1
    assert "Could not load plan" in result.output


def test_plan_file_without_plan(runner, write_plan):
    plan_path = write_plan("x = 1\n")
    result = runner.invoke(main, ["--plan", str(plan_path)])
    assert result.exit_code == 1
    assert "Could not load plan" in result.output


def test_structured_log_file(runner, write_plan, tmp_path):
    plan_path = write_plan(LOCAL_PLAN)
    log_file = tmp_path / "logs" / "fly.log"
    result = runner.invoke(main, ["--plan", str(plan_path), "--log-file", str(log_file)])
    assert result.exit_code == 0, result.output
    assert '"event": "plan_finished"' in log_file.read_text()


class TestLoadPlan:
    def test_returns_plan(self, write_plan):
        plan = load_plan(write_plan(LOCAL_PLAN))
        assert isinstance(plan, Flightplan)
        assert len(plan.flights) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_plan(tmp_path / "nope.py")

    def test_missing_attribute(self, write_plan):
        with pytest.raises(AttributeError, match="does not define a 'plan'"):
            load_plan(write_plan("plan_b = None\n"))

    def test_wrong_type(self, write_plan):
        with pytest.raises(TypeError, match="expected Flightplan"):
            load_plan(write_plan("plan = object()\n"))
