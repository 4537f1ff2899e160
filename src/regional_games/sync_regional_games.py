"""regional_games.sync_regional_games

Unified CLI entrypoint for attaching regional games to users.

Modes (--process):
  cron  : every regional game, every group served by its zip codes (default)
  group : only users of the group named by --group

Usage (cron):
    API_USER=... API_PASS=... python -m regional_games.sync_regional_games \\
        --uri "https://api.example.com" \\
        --process cron -v

Usage (group):
    API_USER=... API_PASS=... python -m regional_games.sync_regional_games \\
        --uri "https://api.example.com" \\
        --process group --group "grp1"

Usage (job file):
    python -m regional_games.sync_regional_games --config jobs/nightly.yaml
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click

from regional_games.config import ApiCredentials, ConfigError, JobConfig, load_job_config
from regional_games.runner import execute_job
from regional_games.shared import RunCounters, build_run_report, write_run_report

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(verbose: bool, debug: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


@click.command()
@click.option("--uri", default=None, help="Base API URI")
@click.option(
    "--process",
    "--job",
    "job",
    default=None,
    type=click.Choice(["cron", "group"]),
    help="Processing mode  [default: cron]",
)
@click.option("--group", default=None, help="[group] Process all users in this group")
@click.option("--config", "config_path", default=None, type=click.Path(), help="YAML job file")
@click.option("--user-env", default="API_USER", show_default=True, help="Env var name holding the API user")
@click.option("--pass-env", default="API_PASS", show_default=True, help="Env var name holding the API password")
@click.option("--timeout", default=None, type=float, help="Per-request timeout in seconds  [default: 3.0]")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option(
    "--report-dir",
    default="./artifacts/reports",
    show_default=True,
    type=click.Path(),
)
@click.option("--no-report", is_flag=True, default=False, help="Skip writing the JSON run report")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Turn on verbose logging")
@click.option("-d", "--debug", is_flag=True, default=False, help="Turn on debugging")
def main(
    uri: str | None,
    job: str | None,
    group: str | None,
    config_path: str | None,
    user_env: str,
    pass_env: str,
    timeout: float | None,
    run_id: str | None,
    report_dir: str,
    no_report: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Attach regional games to the users of the groups that can play them."""
    configure_logging(verbose, debug)
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc).isoformat()

    try:
        base = load_job_config(Path(config_path)) if config_path else JobConfig()
        config = base.merged(
            {"uri": uri, "job": job, "group": group, "timeout": timeout}
        ).validate()
        credentials = ApiCredentials.from_env(user_env, pass_env)
    except ConfigError as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)

    target = f" group={config.group}" if config.group else ""
    click.echo(f"[{run_id}] Starting {config.job} run uri={config.uri}{target}")

    counters = RunCounters()
    error: str | None = None
    try:
        execute_job(config, credentials, counters)
    except Exception as exc:  # noqa: BLE001
        log.exception("%s run failed", config.job)
        error = f"{type(exc).__name__}: {exc}"

    click.echo(build_run_report(counters, config.job, config.group))

    if not no_report:
        report_path = write_run_report(
            Path(report_dir), run_id, started_at, config.job, config.group, counters, error,
        )
        click.echo(f"[{run_id}] Run report: {report_path}")

    if error:
        click.echo(f"[{run_id}] Run failed: {error}", err=True)
        sys.exit(1)
    if counters.attach_failed:
        click.echo(
            f"[{run_id}] {counters.attach_failed} attachment(s) failed; see warnings above",
            err=True,
        )


if __name__ == "__main__":
    main()
