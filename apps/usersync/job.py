"""
User Sync Job - Fetch, Validate and Persist Student Users

Composes the API client from application settings and runs one sync:

    settings -> ClientConfig -> TokenProvider -> PaginatedFetcher
             -> raw JSONL -> StudentUser objects -> users + user_log tables
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import orjson
from pydantic import ValidationError

from services.apiclient import ClientConfig, Credentials, PaginatedFetcher, TokenProvider
from utils.config import Settings
from utils.db import get_conn, get_profile_field, init_schema, log_user_update, upsert_user
from utils.schemas import StudentUser, UserLogEntry

logger = logging.getLogger(__name__)

ProfileLookup = Callable[[int, str], str]


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    fetched: int = 0
    raw_path: Optional[Path] = None
    user_ids: list[int] = field(default_factory=list)
    skipped: int = 0


def invalid_reason(error: ValidationError) -> str:
    """Name a skip reason after the first field that failed validation."""
    errors = error.errors()
    loc = errors[0]["loc"] if errors else ()
    return f"invalid_{loc[0]}" if loc else "invalid_record"


def build_user_objects(records: list[dict[str, Any]], email_prefix: str = "") -> list[StudentUser]:
    """
    Validate raw student records into user objects.

    Records that are not objects, lack an external id (``am``) or an email, or
    fail validation are skipped. Validation failures are grouped by the first
    offending field (``invalid_email``, ``invalid_afm``, ...); the count and
    remote ids of each category are logged.

    Args:
        records: Raw records as returned by the API
        email_prefix: Prefix prepended to every email before validation

    Returns:
        Valid user objects in input order
    """
    users: list[StudentUser] = []
    skipped: dict[str, list[Any]] = {"not_an_object": [], "missing_am": [], "missing_email": [], "invalid_email": []}

    for record in records:
        if not isinstance(record, dict):
            skipped["not_an_object"].append(None)
            continue

        remote_id = record.get("id")

        if not record.get("am"):
            skipped["missing_am"].append(remote_id)
            continue

        email = record.get("email")
        if not email:
            skipped["missing_email"].append(remote_id)
            continue

        try:
            users.append(StudentUser(**{**record, "email": f"{email_prefix}{email}".lower()}))
        except ValidationError as e:
            logger.debug("Invalid student record", extra={"remote_id": remote_id, "error": str(e)})
            skipped.setdefault(invalid_reason(e), []).append(remote_id)

    for reason, ids in skipped.items():
        if ids:
            logger.warning(
                "Skipped %d student records (%s)",
                len(ids),
                reason,
                extra={"reason": reason, "remote_ids": ids},
            )

    return users


def fetch_students(
    fetcher: PaginatedFetcher,
    endpoint: str,
    *,
    user_id: Optional[int] = None,
    profile_lookup: Optional[ProfileLookup] = None,
    id_field: str = "am",
) -> list[dict[str, Any]]:
    """
    Fetch student records from the API.

    Args:
        fetcher: Configured fetcher
        endpoint: Students list endpoint
        user_id: Local user to refresh; all students are fetched when None
        profile_lookup: Callable(user_id, shortname) -> value, required with user_id
        id_field: Profile field (and query parameter) holding the external id

    Returns:
        Raw student records

    Raises:
        ValueError: If user_id is given without a profile lookup
        ClientError: Any authentication or fetch failure
    """
    if user_id is not None:
        if profile_lookup is None:
            raise ValueError("profile_lookup is required when user_id is given")

        external_id = profile_lookup(user_id, id_field)
        if not external_id:
            logger.info("User has no external id, nothing to fetch", extra={"user_id": user_id, "field": id_field})
            return []

        records = fetcher.get_page(endpoint, {id_field: external_id})
        logger.info("Fetched student by external id", extra={"user_id": user_id, "records": len(records)})
        return records

    records = fetcher.get_all_pages(endpoint)
    logger.info("Total students fetched from API: %d", len(records))
    return records


def write_raw_records(records: list[dict[str, Any]], raw_dir: str) -> Path:
    """Write records to ``raw_dir/records_[YYYYMMDD_HHMMSS].jsonl``."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    path = Path(raw_dir) / f"records_{timestamp}.jsonl"
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        for record in records:
            f.write(orjson.dumps(record))
            f.write(b"\n")

    logger.info("Wrote raw records", extra={"file_path": str(path), "records": len(records)})
    return path


def run_sync(
    settings: Settings,
    *,
    user_id: Optional[int] = None,
    http_client: Optional[httpx.Client] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> SyncResult:
    """
    Run one user sync.

    Args:
        settings: Application settings
        user_id: Refresh a single local user instead of fetching every page
        http_client: Optional HTTP client shared by provider and fetcher
        conn: Optional open database connection; one is opened otherwise

    Returns:
        SyncResult with counts, raw file path and processed user ids

    Raises:
        ClientError: If authentication or fetching fails
        sqlite3.Error: If persistence fails
    """
    config = ClientConfig.from_settings(settings)
    credentials = Credentials(
        username=settings.API_USERNAME,
        password=settings.API_PASSWORD,
        endpoint=settings.API_TOKEN_ENDPOINT,
    )

    owns_conn = conn is None
    if conn is None:
        conn = get_conn(settings.SQLITE_PATH)

    try:
        init_schema(conn)

        with TokenProvider(config, http_client=http_client, dummy_token=settings.API_DUMMY_TOKEN) as provider:
            with PaginatedFetcher(
                config,
                token_provider=provider,
                credentials=credentials,
                http_client=http_client,
            ) as fetcher:
                records = fetch_students(
                    fetcher,
                    settings.STUDENTS_ENDPOINT,
                    user_id=user_id,
                    profile_lookup=partial(get_profile_field, conn),
                    id_field=settings.PROFILE_ID_FIELD,
                )

        result = SyncResult(fetched=len(records))
        if not records:
            return result

        result.raw_path = write_raw_records(records, settings.RAW_DIR)

        users = build_user_objects(records, settings.EMAIL_PREFIX)
        result.skipped = len(records) - len(users)

        for user in users:
            local_id = upsert_user(conn, user)
            log_user_update(conn, UserLogEntry(user_id=local_id, afm=user.afm, am=user.am))
            result.user_ids.append(local_id)

        logger.info(
            "User sync completed",
            extra={"fetched": result.fetched, "users": len(result.user_ids), "skipped": result.skipped},
        )
        return result

    finally:
        if owns_conn:
            conn.close()
