"""regional_games.handler

Event-driven entry point (scheduler / function-as-a-service).

Event shape::

    {"uri": "https://api.example.com", "job": "cron"}
    {"uri": "https://api.example.com", "job": "group", "group": "grp1"}

Configuration problems raise ConfigError before any request is made.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Mapping

from regional_games.config import ApiCredentials, ConfigError, JobConfig
from regional_games.runner import execute_job
from regional_games.shared import RunCounters

log = logging.getLogger(__name__)


def handler(event: Mapping[str, Any] | None, context: Any = None) -> dict[str, Any]:
    log.debug("Processing event: %s", json.dumps(event, default=str))
    run_id = str(getattr(context, "aws_request_id", "") or uuid.uuid4())

    config = JobConfig.from_event(event)
    log.info("Process Job %s API Url %s", config.job, config.uri)
    try:
        config.validate()
        credentials = ApiCredentials.from_env()
    except ConfigError as exc:
        log.error("[%s] %s", run_id, exc)
        raise

    counters = RunCounters()
    try:
        execute_job(config, credentials, counters)
    except Exception:
        log.exception("[%s] %s job failed", run_id, config.job)
        raise

    return {
        "run_id": run_id,
        "job": config.job,
        "group": config.group,
        "counters": counters.to_dict(),
    }
