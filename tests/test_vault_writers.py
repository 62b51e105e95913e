from __future__ import annotations

import allure
import httpx
import pytest

from vault_clipper.config import VaultSettings
from vault_clipper.vault.rest import (
    INVALID_API_KEY_ERROR,
    MISSING_API_KEY_ERROR,
    NOT_RUNNING_ERROR,
    PLUGIN_NOT_FOUND_ERROR,
    RestVaultWriter,
    note_path,
)
from vault_clipper.vault.uri import (
    MAX_URI_CHARS,
    UriVaultWriter,
    build_new_note_uri,
    build_open_vault_uri,
)

pytestmark = [
    allure.epic("Notes"),
    allure.feature("Vault Writers"),
]

VAULT = VaultSettings(vault_name="My Vault", api_key="secret")


def _rest_writer(handler) -> RestVaultWriter:
    return RestVaultWriter(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_note_path_adds_markdown_extension_once() -> None:
    assert note_path("Clippings", "Note") == "Clippings/Note.md"
    assert note_path("", "Note.md") == "Note.md"


@pytest.mark.asyncio
async def test_rest_write_puts_markdown_with_bearer_key() -> None:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    result = await _rest_writer(_handler).write("Clippings", "My Note", "# Hi", VAULT)

    assert result.success is True
    assert result.path == "Clippings/My Note.md"
    request = requests[0]
    assert request.method == "PUT"
    assert request.url.raw_path == b"/vault/Clippings/My%20Note.md"
    assert request.url.port == 27124
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Content-Type"] == "text/markdown"
    assert request.content == b"# Hi"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, INVALID_API_KEY_ERROR),
        (404, PLUGIN_NOT_FOUND_ERROR),
        (500, "API error: 500 - boom"),
    ],
)
async def test_rest_write_maps_error_statuses(status: int, error: str) -> None:
    writer = _rest_writer(lambda _: httpx.Response(status, text="boom"))

    result = await writer.write("", "Note", "x", VAULT)

    assert result.success is False
    assert result.error == error
    assert result.not_running is False


@pytest.mark.asyncio
async def test_rest_write_reports_unreachable_app() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    result = await _rest_writer(_refuse).write("", "Note", "x", VAULT)

    assert result.success is False
    assert result.not_running is True
    assert result.error == NOT_RUNNING_ERROR


@pytest.mark.asyncio
async def test_rest_requires_api_key_before_any_request() -> None:
    calls: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    writer = _rest_writer(_handler)
    no_key = VaultSettings(vault_name="My Vault")

    assert (await writer.write("", "Note", "x", no_key)).error == MISSING_API_KEY_ERROR
    assert (await writer.ping(no_key)).error == MISSING_API_KEY_ERROR
    assert calls == []


@pytest.mark.asyncio
async def test_rest_ping() -> None:
    ok = await _rest_writer(lambda _: httpx.Response(200, json={"status": "OK"})).ping(VAULT)
    unauthorized = await _rest_writer(lambda _: httpx.Response(401)).ping(VAULT)

    assert ok.success is True
    assert unauthorized.success is False
    assert unauthorized.error == INVALID_API_KEY_ERROR


def test_uri_builders_percent_encode_every_part() -> None:
    uri = build_new_note_uri("My Vault", "Clippings/ex", "A & B", "# Title\nline")

    assert uri == (
        "obsidian://new?vault=My%20Vault&file=Clippings%2Fex%2FA%20%26%20B"
        "&content=%23%20Title%0Aline"
    )
    assert build_open_vault_uri("My Vault") == "obsidian://open?vault=My%20Vault"
    assert build_open_vault_uri(None) == "obsidian://open"


@pytest.mark.asyncio
async def test_uri_dispatch_hands_off_and_reports_path() -> None:
    opened: list[str] = []

    def _opener(uri: str) -> bool:
        opened.append(uri)
        return True

    writer = UriVaultWriter(opener=_opener)

    result = await writer.dispatch("Clippings", "Note", "body", "My Vault")
    await writer.open_vault("My Vault")

    assert result.success is True
    assert result.path == "Clippings/Note.md"
    assert opened[0].startswith("obsidian://new?vault=My%20Vault")
    assert opened[1] == "obsidian://open?vault=My%20Vault"


@pytest.mark.asyncio
async def test_uri_dispatch_failures() -> None:
    writer = UriVaultWriter(opener=lambda _: False)

    no_vault = await writer.dispatch("", "Note", "body", "")
    rejected = await writer.dispatch("", "Note", "body", "Notes")
    too_large = await UriVaultWriter(opener=lambda _: True).dispatch(
        "",
        "Note",
        "x" * MAX_URI_CHARS,
        "Notes",
    )

    assert no_vault.error == "Vault name is not configured"
    assert rejected.error == "No handler accepted the obsidian:// URI"
    assert too_large.error == "Note is too large for URI handoff"
