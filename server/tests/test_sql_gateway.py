import json

import pytest

from sqlgate.db.explorer import count_rows, list_tables
from sqlgate.db.seed import SEED_ROWS
from sqlgate.tools import sql_gateway


@pytest.mark.asyncio
async def test_select_on_empty_table(client):
    r = await client.get("/api/v1/sql/select%20*%20from%20patient")
    assert r.status_code == 200
    assert r.json() == {"rows": []}


@pytest.mark.asyncio
async def test_insert_then_select(client):
    query = "insert into patient (name, dateOfBirth) values ('Ada Lovelace','1815-12-10')"
    r = await client.post("/api/v1/sql", json={"query": query})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["affectedRows"] == 1
    assert isinstance(body["insertId"], int) and body["insertId"] > 0

    r = await client.get("/api/v1/sql/select%20name,%20dateOfBirth%20from%20patient")
    assert r.json() == {"rows": [{"name": "Ada Lovelace", "dateOfBirth": "1815-12-10"}]}


@pytest.mark.asyncio
async def test_drop_is_forbidden_and_table_survives(client, store):
    r = await client.get("/api/v1/sql/drop%20table%20patient")
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden statement."}
    assert "patient" in await list_tables(store)


@pytest.mark.asyncio
async def test_forbidden_keyword_on_write_channel(client, store):
    r = await client.post("/api/v1/sql", json={"query": "insert into patient (name) values ('x'); delete from patient"})
    assert r.status_code == 403
    assert await count_rows(store) == 0


@pytest.mark.asyncio
async def test_seed_then_read_all(client):
    r = await client.post("/api/v1/seed")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["inserted"] == 4

    r = await client.get("/api/v1/sql/select%20*%20from%20patient")
    rows = r.json()["rows"]
    assert len(rows) == 4
    assert [(row["name"], row["dateOfBirth"]) for row in rows] == SEED_ROWS


@pytest.mark.asyncio
async def test_select_must_reference_patient(client):
    r = await client.get("/api/v1/sql/select%20*%20from%20other_table")
    assert r.status_code == 400
    assert "must reference" in r.json()["error"]


@pytest.mark.asyncio
async def test_wrong_intent_per_channel(client):
    r = await client.get("/api/v1/sql/insert%20into%20patient%20(name)%20values%20('x')")
    assert r.status_code == 400
    assert r.json() == {"error": "GET only allows SELECT."}

    r = await client.post("/api/v1/sql", json={"query": "select * from patient"})
    assert r.status_code == 400
    assert r.json() == {"error": "POST only allows INSERT."}


@pytest.mark.asyncio
async def test_sql_with_slashes_is_rejoined(client):
    r = await client.get("/api/v1/sql/select%2010/2%20as%20half%20from%20patient")
    assert r.status_code == 200
    assert r.json() == {"rows": []}


@pytest.mark.asyncio
async def test_missing_sql_in_path(client):
    r = await client.get("/api/v1/sql/")
    assert r.status_code == 400
    assert r.json() == {"error": "Missing SQL in path."}


@pytest.mark.asyncio
async def test_badly_encoded_sql(client):
    r = await client.get("/api/v1/sql/select%20%FF%20from%20patient")
    assert r.status_code == 400
    assert r.json() == {"error": "Badly encoded SQL."}


def test_sql_from_path_rejects_stray_percent():
    with pytest.raises(sql_gateway.GatewayError) as exc:
        sql_gateway.sql_from_path("/api/v1/sql/select%2%20from%20patient")
    assert exc.value.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content,message",
    [
        (b"{not json", "Invalid JSON body."),
        (b"[1, 2]", "Invalid JSON body."),
        (b"", "Missing 'query' field."),
        (b"{}", "Missing 'query' field."),
        (json.dumps({"query": "   "}).encode(), "Missing 'query' field."),
        (b'{"query": false}', "Missing 'query' field."),
        (b'{"query": 0}', "Missing 'query' field."),
        (b'{"query": null}', "Missing 'query' field."),
    ],
)
async def test_malformed_write_requests(client, content, message):
    r = await client.post("/api/v1/sql", content=content, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": message}


@pytest.mark.asyncio
async def test_oversized_body(client, monkeypatch):
    monkeypatch.setattr(sql_gateway, "MAX_BODY_BYTES", 64)
    query = "insert into patient (name) values ('" + "x" * 100 + "')"
    r = await client.post("/api/v1/sql", json={"query": query})
    assert r.status_code == 413
    assert r.json() == {"error": "Body too large."}


@pytest.mark.asyncio
async def test_store_error_is_passed_through(client):
    r = await client.post("/api/v1/sql", json={"query": "insert into patient (nosuchcolumn) values (1)"})
    assert r.status_code == 400
    assert "nosuchcolumn" in r.json()["error"]


@pytest.mark.asyncio
async def test_multi_statement_read_is_rejected(client):
    r = await client.get("/api/v1/sql/select%20*%20from%20patient;%20select%201")
    assert r.status_code == 400
    assert "error" in r.json()


@pytest.mark.asyncio
async def test_options_and_not_found(client):
    r = await client.options("/api/v1/sql")
    assert r.status_code == 204
    assert r.content == b""

    r = await client.options("/api/v1/sql", headers={"Origin": "http://x", "Access-Control-Request-Method": "POST"})
    assert r.status_code == 204
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["access-control-max-age"] == "600"

    r = await client.options(
        "/api/v1/sql/select%201",
        headers={
            "Origin": "http://x",
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "content-type, authorization",
        },
    )
    assert r.status_code == 204
    assert r.content == b""

    r = await client.get("/api/v1/nothing")
    assert r.status_code == 404
    assert r.json() == {"error": "Not found"}

    r = await client.put("/api/v1/sql", json={"query": "x"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_root_health_and_request_id(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert "/api/v1/sql/" in r.text
    assert r.headers.get("x-request-id")

    r = await client.get("/health")
    assert r.status_code == 200
    store_report = r.json()["components"]["store"]
    assert store_report["status"] == "ok"
    assert "patient" in store_report["tables"]
    assert store_report["rows"] == 0


@pytest.mark.asyncio
async def test_audit_file_records_decisions(client, tmp_path, monkeypatch):
    audit_path = tmp_path / "audit.log"
    monkeypatch.setenv("SQLGATE_AUDIT_LOG_PATH", str(audit_path))
    await client.get("/api/v1/sql/drop%20table%20patient")
    await client.get("/api/v1/sql/select%20*%20from%20patient")
    lines = audit_path.read_text().splitlines()
    assert "rejected read" in lines[0] and "outcome=forbidden" in lines[0]
    assert "executed read" in lines[1]
