"""regional_games.runner

Glue between a validated JobConfig and the pipeline: opens the API client,
runs cron or group, and closes the client again.
"""

from __future__ import annotations

import asyncio
import logging

from regional_games.api import ApiClient
from regional_games.config import ApiCredentials, JobConfig
from regional_games.pipeline import JobMode, run_pipeline
from regional_games.shared import RunCounters

log = logging.getLogger(__name__)


async def run_job(
    config: JobConfig,
    credentials: ApiCredentials,
    counters: RunCounters | None = None,
) -> RunCounters:
    config.validate()
    counters = counters if counters is not None else RunCounters()

    if config.mode is JobMode.CRON:
        log.info("Processing cron for all games")
    else:
        log.info("Processing all games for group %s", config.group)

    async with ApiClient(
        config.uri,  # type: ignore[arg-type]
        credentials.user,
        credentials.password,
        timeout=config.timeout,
    ) as api:
        return await run_pipeline(
            api,
            config.mode,
            config.group,
            counters=counters,
            per_page=config.per_page,
        )


def execute_job(
    config: JobConfig,
    credentials: ApiCredentials,
    counters: RunCounters | None = None,
) -> RunCounters:
    """Blocking wrapper around run_job for the CLI and handler."""
    return asyncio.run(run_job(config, credentials, counters))
