# tests/test_external_clients.py
"""Tests for the extraction, invitation, messaging and Google Workspace adapters."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from onboard_bot.domain.collaborators import ExtractionGatewayError
from onboard_bot.infrastructure.external.google_workspace import (
    CLIENT_SUBFOLDERS,
    GoogleDriveClient,
    GoogleSheetsClient,
    GoogleWorkspaceError,
    folder_slug,
)
from onboard_bot.infrastructure.external.leadsie_client import LeadsieClient, LeadsieError
from onboard_bot.infrastructure.external.llm_client import (
    OpenAIExtractionGateway,
    build_messages,
)
from onboard_bot.infrastructure.external.messaging import split_text


# ── extraction gateway ──────────────────────────────────────────


def test_build_messages_orders_history_and_drops_empty_turns():
    messages = build_messages(
        "SYSTEM",
        [{"role": "user", "text": "Hi"}, {"role": "assistant", "text": ""}, {"role": "assistant", "text": "Hello!"}],
        "John",
    )
    assert messages == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "John"},
    ]


def _openai_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def test_gateway_returns_raw_content(event_loop):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"message": "hi"}'))])
    create = AsyncMock(return_value=response)
    gateway = OpenAIExtractionGateway(model="gpt-test", client=_openai_client(create))

    raw = event_loop.run_until_complete(gateway.extract("SYSTEM", [], "John"))

    assert raw == '{"message": "hi"}'
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["response_format"] == {"type": "json_object"}


def test_gateway_wraps_api_errors(event_loop):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    create = AsyncMock(side_effect=APIConnectionError(request=request))
    gateway = OpenAIExtractionGateway(model="gpt-test", client=_openai_client(create))

    with pytest.raises(ExtractionGatewayError):
        event_loop.run_until_complete(gateway.extract("SYSTEM", [], "John"))


# ── Leadsie ─────────────────────────────────────────────────────


def test_leadsie_creates_invitation(event_loop):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": 42, "invite_url": "https://leadsie.example/42", "status": "pending"})

    client = LeadsieClient(api_key="key", base_url="https://api.leadsie.test/v1/", transport=httpx.MockTransport(handler))

    invitation = event_loop.run_until_complete(
        client.create_invitation("Acme", "john@acme.com", ["facebook", "google"], "Hi John!")
    )

    assert invitation.invite_id == "42"
    assert invitation.invite_url == "https://leadsie.example/42"
    assert invitation.platforms == ["facebook", "google"]
    assert seen["auth"] == "Bearer key"
    assert seen["body"]["client_email"] == "john@acme.com"


def test_leadsie_http_error_raises(event_loop):
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"error": "bad platform"}))
    client = LeadsieClient(api_key="key", base_url="https://api.leadsie.test/v1", transport=transport)

    with pytest.raises(LeadsieError) as exc_info:
        event_loop.run_until_complete(client.create_invitation("Acme", "", ["myspace"], "Hi"))
    assert exc_info.value.status_code == 422
    assert exc_info.value.response == {"error": "bad platform"}


def test_leadsie_without_api_key_raises(event_loop):
    client = LeadsieClient(api_key="", base_url="https://api.leadsie.test/v1")
    with pytest.raises(LeadsieError):
        event_loop.run_until_complete(client.create_invitation("Acme", "", ["facebook"], "Hi"))


# ── messaging ───────────────────────────────────────────────────


def test_split_text_keeps_short_messages_whole():
    assert split_text("hello") == ["hello"]


def test_split_text_breaks_on_paragraphs():
    text = "\n\n".join(["a" * 30, "b" * 30, "c" * 30])
    chunks = split_text(text, limit=70)
    assert chunks == ["a" * 30 + "\n\n" + "b" * 30, "c" * 30]
    assert all(len(c) <= 70 for c in chunks)


def test_split_text_hard_wraps_long_paragraph():
    chunks = split_text("x" * 25, limit=10)
    assert chunks == ["x" * 10, "x" * 10, "x" * 5]


# ── Google Workspace ────────────────────────────────────────────


def _drive_mock():
    drive = MagicMock()
    counter = {"n": 0}

    def create(body, fields):
        counter["n"] += 1
        fid = f"id-{counter['n']}"
        return MagicMock(execute=MagicMock(return_value={"id": fid, "webViewLink": f"https://drive.example/{fid}"}))

    drive.files.return_value.create.side_effect = create
    return drive


def test_folder_tree_creates_every_subfolder(event_loop):
    drive = _drive_mock()
    client = GoogleDriveClient(drive=drive, docs=MagicMock(), root_folder_id="root")

    tree = event_loop.run_until_complete(client.create_folder_tree("Acme"))

    assert tree.root_id == "id-1"
    assert set(tree.subfolders) == {folder_slug(s) for s in CLIENT_SUBFOLDERS}
    assert "brand_assets" in tree.subfolders
    first_body = drive.files.return_value.create.call_args_list[0].kwargs["body"]
    assert first_body["parents"] == ["root"]


def test_document_content_is_inserted(event_loop):
    drive = _drive_mock()
    docs = MagicMock()
    client = GoogleDriveClient(drive=drive, docs=docs, root_folder_id="root")

    doc = event_loop.run_until_complete(client.create_document("Acme - Intake", "Body text", "fld-1"))

    assert doc.id == "id-1"
    request = docs.documents.return_value.batchUpdate.call_args.kwargs["body"]["requests"][0]
    assert request["insertText"]["text"] == "Body text"


def test_google_http_error_is_wrapped(event_loop):
    from googleapiclient.errors import HttpError

    drive = MagicMock()
    drive.files.return_value.create.return_value.execute.side_effect = HttpError(
        SimpleNamespace(status=403, reason="Forbidden"), b'{"error": {"message": "forbidden"}}'
    )
    client = GoogleDriveClient(drive=drive, docs=MagicMock(), root_folder_id="root")

    with pytest.raises(GoogleWorkspaceError) as exc_info:
        event_loop.run_until_complete(client.create_folder("Acme"))
    assert exc_info.value.status_code == 403


def test_profile_record_is_written_and_moved(event_loop):
    sheets = MagicMock()
    sheets.spreadsheets.return_value.create.return_value.execute.return_value = {
        "spreadsheetId": "sheet-1",
        "spreadsheetUrl": "https://sheets.example/sheet-1",
        "sheets": [{"properties": {"sheetId": 0}}],
    }
    drive = MagicMock()
    client = GoogleSheetsClient(sheets=sheets, drive=drive)

    record = event_loop.run_until_complete(
        client.create_record("Acme - Client Profile", [["CLIENT PROFILE", ""], ["Name", "John"]], "fld-1")
    )

    assert record.url == "https://sheets.example/sheet-1"
    drive.files.return_value.update.assert_called_once_with(fileId="sheet-1", addParents="fld-1", fields="id, parents")
    values = sheets.spreadsheets.return_value.values.return_value.update.call_args.kwargs["body"]["values"]
    assert values[1] == ["Name", "John"]
