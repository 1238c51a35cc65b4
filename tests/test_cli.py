"""CLI tests — commands run against a stubbed HTTP transport.

Learn: The CLI builds its httpx client through `_client()`; tests swap it
for one backed by httpx.MockTransport that records each request and
returns canned JSON, so no server is needed.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from matrixstore.cli import main as cli


@pytest.fixture
def api(monkeypatch):
    """Install a fake server; returns (requests, responses) for the test to fill."""
    requests: list[httpx.Request] = []
    responses: dict[tuple[str, str], httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responses[(request.method, request.url.path)]

    monkeypatch.setattr(
        cli,
        "_client",
        lambda: httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test"
        ),
    )
    return requests, responses


def test_login_prints_token(api):
    requests, responses = api
    responses[("POST", "/api/login")] = httpx.Response(
        200, json={"token": "tok-123", "access_token": "tok-123", "token_type": "bearer"}
    )

    result = CliRunner().invoke(cli.main, ["login", "a@x.com", "--password", "pw"])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == "tok-123"
    assert json.loads(requests[0].content) == {"email": "a@x.com", "password": "pw"}


def test_login_failure_shows_server_error(api):
    _, responses = api
    responses[("POST", "/api/login")] = httpx.Response(
        401, json={"error": "Invalid credentials", "code": "invalid_credentials"}
    )

    result = CliRunner().invoke(cli.main, ["login", "a@x.com", "--password", "bad"])

    assert result.exit_code == 1
    assert "Invalid credentials" in result.output


def test_save_matrix_sends_columns_and_token(api):
    requests, responses = api
    responses[("POST", "/api/save-matrix")] = httpx.Response(
        201, json={"message": "Matrix saved successfully", "matrixId": 5}
    )

    result = CliRunner().invoke(
        cli.main,
        ["save-matrix", "-c", "Age=int", "-c", "Name=str.strip", "--token", "tok"],
    )

    assert result.exit_code == 0, result.output
    assert "Saved matrix 5" in result.output
    assert requests[0].headers["Authorization"] == "Bearer tok"
    assert json.loads(requests[0].content) == {
        "matrixData": [
            {"columnName": "Age", "transformation": "int"},
            {"columnName": "Name", "transformation": "str.strip"},
        ]
    }


def test_save_matrix_from_file_with_explicit_id(api, tmp_path):
    requests, responses = api
    responses[("POST", "/api/save-matrix")] = httpx.Response(201, json={"matrixId": 3})
    columns = tmp_path / "columns.json"
    columns.write_text(json.dumps([{"columnName": "Zip", "transformation": "str"}]))

    result = CliRunner().invoke(
        cli.main,
        ["save-matrix", "-m", "3", "-f", str(columns)],
        env={"MATRIXSTORE_TOKEN": "tok"},
    )

    assert result.exit_code == 0, result.output
    body = json.loads(requests[0].content)
    assert body["matrixId"] == 3
    assert body["matrixData"] == [{"columnName": "Zip", "transformation": "str"}]


def test_save_matrix_rejects_bad_column_spec(api):
    requests, _ = api
    result = CliRunner().invoke(cli.main, ["save-matrix", "-c", "Age", "--token", "tok"])
    assert result.exit_code != 0
    assert requests == []


def test_commands_require_token(api, monkeypatch):
    monkeypatch.delenv("MATRIXSTORE_TOKEN", raising=False)
    result = CliRunner().invoke(cli.main, ["list-matrices"])
    assert result.exit_code == 1
    assert "--token required" in result.output


def test_list_matrices(api):
    _, responses = api
    responses[("GET", "/api/get-matrix-list")] = httpx.Response(
        200, json={"matrixIds": [1, 2, 5]}
    )

    result = CliRunner().invoke(cli.main, ["list-matrices", "--token", "tok"])

    assert result.exit_code == 0
    assert result.output.split() == ["1", "2", "5"]


def test_show_matrix_table(api):
    _, responses = api
    responses[("GET", "/api/get-matrix/2")] = httpx.Response(
        200,
        json={
            "matrixId": 2,
            "matrixData": [
                {"columnName": "Age", "transformation": "int"},
                {"columnName": "Name", "transformation": "str"},
            ],
        },
    )

    result = CliRunner().invoke(cli.main, ["show-matrix", "2", "--token", "tok"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].split() == ["COLUMN", "TRANSFORMATION"]
    assert lines[2].split() == ["Age", "int"]
    assert lines[3].split() == ["Name", "str"]


def test_show_empty_matrix(api):
    _, responses = api
    responses[("GET", "/api/get-matrix/9")] = httpx.Response(
        200, json={"matrixId": 9, "matrixData": []}
    )

    result = CliRunner().invoke(cli.main, ["show-matrix", "9", "--token", "tok"])

    assert result.exit_code == 0
    assert "no rows" in result.output
