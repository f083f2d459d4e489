"""
CLI interface for flightplan.

Provides the `fly` command: load a plan file and fly it to a destination.

The plan file is a Python module exposing a `plan` attribute that holds a
Flightplan instance.
"""

import importlib.util
from pathlib import Path

import click

from flightplan import __version__
from flightplan.config import load_config
from flightplan.errors import ConfigError
from flightplan.plan import Flightplan
from flightplan.utils import print_error, setup_logging

DEFAULT_PLAN_FILE = "flightplan.py"


def load_plan(plan_path: Path) -> Flightplan:
    """
    Import a plan file and return its `plan` attribute.

    Raises:
        FileNotFoundError: If the plan file does not exist
        ImportError: If the file cannot be loaded as a module
        AttributeError: If the module has no `plan` attribute
        TypeError: If `plan` is not a Flightplan
    """
    plan_path = Path(plan_path)
    if not plan_path.exists():
        raise FileNotFoundError(f"Plan file not found: {plan_path}")

    spec = importlib.util.spec_from_file_location("flightplan_userplan", plan_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load plan file {plan_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    try:
        plan = getattr(module, "plan")
    except AttributeError as e:
        raise AttributeError(f"{plan_path} does not define a 'plan' variable") from e

    if not isinstance(plan, Flightplan):
        raise TypeError(f"'plan' in {plan_path} is {type(plan).__name__}, expected Flightplan")

    return plan


@click.command()
@click.version_option(version=__version__, prog_name="fly")
@click.argument("destination", required=False)
@click.option(
    "--plan",
    "plan_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_PLAN_FILE,
    show_default=True,
    help="Plan file defining `plan = Flightplan()`",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML file with destinations and logging settings (default: $FLIGHTPLAN_CONFIG)",
)
@click.option("-u", "--username", help="Override the username of every destination host")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-format",
    type=click.Choice(["pretty", "structured"], case_sensitive=False),
    help="Console log format",
)
@click.option("--log-file", type=click.Path(path_type=Path), help="Write JSON log lines to this file")
def main(destination, plan_path, config_path, username, verbose, log_format, log_file):
    """
    fly - run a flightplan against DESTINATION.

    Examples:

      # Local-only plan
      fly

      # Deploy to every host of the production destination
      fly production

      # Deploy as another user
      fly production --username admin

      # Custom plan and config files
      fly staging --plan deploy/flightplan.py --config deploy/hosts.yaml
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1)

    setup_logging(
        log_level="DEBUG" if verbose else config.get_log_level(),
        log_format=log_format or config.get_log_format(),
        log_file=log_file or config.get_log_file(),
    )

    try:
        plan = load_plan(plan_path)
    except Exception as e:
        print_error(f"Could not load plan: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        raise SystemExit(1)

    if plan.briefing() is None and config.has_destinations():
        try:
            plan.briefing({"destinations": config.destinations})
        except ConfigError as e:
            print_error(str(e))
            raise SystemExit(1)

    plan.start(destination, {"username": username})


if __name__ == "__main__":
    main()
