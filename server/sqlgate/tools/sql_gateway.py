import json
import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import unquote_to_bytes

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from sqlgate.core.audit import log_audit_event, preview
from sqlgate.core.errors import GatewayError, StoreError
from sqlgate.core.logging import get_logger
from sqlgate.db.seed import seed
from sqlgate.db.session import Store
from sqlgate.services.classifier import PERMITTED_TABLE, ClassificationResult, Intent, classify
from sqlgate.services.sql_engine import execute_read, execute_write

logger = get_logger("sqlgate.gateway")

MAX_BODY_BYTES = int(os.getenv("SQLGATE_MAX_BODY_BYTES", "1000000"))

SQL_PATH_PREFIX = "/api/v1/sql/"

_BAD_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

router = APIRouter()


class ReadResult(BaseModel):
    rows: List[Dict[str, Any]]


class WriteResult(BaseModel):
    ok: bool = True
    affectedRows: int
    insertId: Optional[int] = None


class SeedResult(BaseModel):
    ok: bool = True
    message: str = "Database seeded successfully."
    inserted: int


_WRONG_INTENT_MESSAGES = {
    Intent.READ: "GET only allows SELECT.",
    Intent.WRITE: "POST only allows INSERT.",
}


def get_store(request: Request) -> Store:
    return request.app.state.store


def _client(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def sql_from_path(raw_path: str) -> str:
    """Pull the percent-decoded SQL text out of a raw ``/api/v1/sql/...`` path."""
    tail = raw_path[len(SQL_PATH_PREFIX):] if raw_path.startswith(SQL_PATH_PREFIX) else ""
    encoded = "/".join(part for part in tail.split("/") if part)
    if not encoded:
        raise GatewayError(400, "Missing SQL in path.")
    if _BAD_PERCENT_RE.search(encoded):
        raise GatewayError(400, "Badly encoded SQL.")
    try:
        return unquote_to_bytes(encoded).decode("utf-8")
    except UnicodeDecodeError:
        raise GatewayError(400, "Badly encoded SQL.")


def _raw_path(request: Request) -> str:
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.url.path
    return raw.split(b"?", 1)[0].decode("latin-1")


async def read_body(request: Request, limit: int = None) -> bytes:
    """Read the whole request body, refusing anything over ``limit`` bytes."""
    limit = MAX_BODY_BYTES if limit is None else limit
    size = 0
    chunks = []
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise GatewayError(413, "Body too large.")
        chunks.append(chunk)
    return b"".join(chunks)


def query_from_body(raw: bytes) -> str:
    try:
        payload = json.loads(raw or b"{}")
    except ValueError:
        raise GatewayError(400, "Invalid JSON body.")
    if not isinstance(payload, dict):
        raise GatewayError(400, "Invalid JSON body.")
    query = payload.get("query")
    # false, 0 and null count as missing
    sql = str(query) if query else ""
    if not sql.strip():
        raise GatewayError(400, "Missing 'query' field.")
    return sql


def check_statement(sql: str, intent: Intent, client: Optional[str] = None):
    """Classify ``sql`` and raise the matching GatewayError unless approved."""
    outcome = classify(sql, intent)
    if outcome is ClassificationResult.APPROVED:
        return
    log_audit_event(f"rejected {intent.value}", client, f"outcome={outcome.value} sql={preview(sql)}")
    if outcome is ClassificationResult.FORBIDDEN:
        raise GatewayError(403, "Forbidden statement.")
    if outcome is ClassificationResult.WRONG_INTENT:
        raise GatewayError(400, _WRONG_INTENT_MESSAGES[intent])
    raise GatewayError(400, f"Query must reference '{PERMITTED_TABLE}'.")


# GET /api/v1/sql/{SQL}: SELECT only
@router.get("/sql/{sql:path}", response_model=ReadResult)
async def run_select(request: Request, store: Store = Depends(get_store)):
    client = _client(request)
    sql = sql_from_path(_raw_path(request))
    check_statement(sql, Intent.READ, client)
    try:
        rows = await execute_read(store, sql)
    except StoreError as e:
        log_audit_event("store_error read", client, f"error={e.message} sql={preview(sql)}")
        raise GatewayError(400, e.message)
    log_audit_event("executed read", client, f"rows={len(rows)} sql={preview(sql)}")
    return ReadResult(rows=rows)


# POST /api/v1/sql {"query": "..."}: INSERT only
@router.post("/sql", response_model=WriteResult)
async def run_insert(request: Request, store: Store = Depends(get_store)):
    client = _client(request)
    sql = query_from_body(await read_body(request))
    check_statement(sql, Intent.WRITE, client)
    try:
        outcome = await execute_write(store, sql)
    except StoreError as e:
        log_audit_event("store_error write", client, f"error={e.message} sql={preview(sql)}")
        raise GatewayError(400, e.message)
    log_audit_event(
        "executed write", client,
        f"affected={outcome.affected_rows} insert_id={outcome.insert_id} sql={preview(sql)}",
    )
    return WriteResult(affectedRows=outcome.affected_rows, insertId=outcome.insert_id)


@router.post("/seed", response_model=SeedResult)
async def seed_database(request: Request, store: Store = Depends(get_store)):
    try:
        result = await seed(store)
    except StoreError as e:
        raise GatewayError(400, e.message)
    log_audit_event("seed", _client(request), f"inserted={result['inserted']}")
    return SeedResult(inserted=result["inserted"])
