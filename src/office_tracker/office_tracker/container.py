from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .core.constants import DEFAULT_JOBS_TIMEZONE, HTTP_TIMEOUT_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .push.client import DEFAULT_PUSH_API_URL, ExpoPushClient
from .push.jobs import PushJobs
from .storage.mysql_remote_store import MySQLRemoteStore


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    remote_store: MySQLRemoteStore
    push_client: ExpoPushClient

    push_jobs: PushJobs


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    remote_store = MySQLRemoteStore(conn)
    push_client = ExpoPushClient(
        getattr(settings, "PUSH_API_URL", DEFAULT_PUSH_API_URL),
        timeout=float(getattr(settings, "HTTP_TIMEOUT_SECONDS", HTTP_TIMEOUT_SECONDS)),
    )
    push_jobs = PushJobs(
        remote_store,
        push_client,
        timezone=getattr(settings, "JOBS_TIMEZONE", DEFAULT_JOBS_TIMEZONE),
    )

    return Container(
        conn=conn,
        remote_store=remote_store,
        push_client=push_client,
        push_jobs=push_jobs,
    )
