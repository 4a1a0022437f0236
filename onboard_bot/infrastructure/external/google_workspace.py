# onboard_bot/infrastructure/external/google_workspace.py
"""
Google Drive / Docs / Sheets adapters for provisioning.

The discovery clients are synchronous; every call runs in a worker thread
via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import os
import re
from typing import Any, Callable, Sequence

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger

from onboard_bot.core.config import settings
from onboard_bot.domain.collaborators import CreatedResource, FolderTree

SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/spreadsheets",
]

FOLDER_MIME = "application/vnd.google-apps.folder"
DOCUMENT_MIME = "application/vnd.google-apps.document"

CLIENT_SUBFOLDERS = [
    "Brand Assets",
    "Reports",
    "Strategic Plans",
    "Creatives",
    "Audits",
    "Competitor Research",
]

# Header band for the profile record: white bold text on dark blue
HEADER_BAND_FORMAT = {
    "backgroundColor": {"red": 0.2, "green": 0.3, "blue": 0.6},
    "textFormat": {"bold": True, "fontSize": 14, "foregroundColor": {"red": 1, "green": 1, "blue": 1}},
}


class GoogleWorkspaceError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def folder_slug(name: str) -> str:
    """'Brand Assets' → 'brand_assets'."""
    return re.sub(r"\s+", "_", name.strip().lower())


def folder_url(folder_id: str) -> str:
    return f"https://drive.google.com/drive/folders/{folder_id}"


# ---------------------------------------------------------------------------
# Credentials / services (lazy singletons)
# ---------------------------------------------------------------------------
_credentials = None
_services: dict[str, Any] = {}


def get_credentials():
    global _credentials
    if _credentials is None:
        path = settings.GOOGLE_SERVICE_ACCOUNT_FILE
        if not path or not os.path.exists(path):
            raise GoogleWorkspaceError("Google service account file is not configured")
        _credentials = service_account.Credentials.from_service_account_file(path, scopes=SCOPES)
    return _credentials


def get_service(name: str, version: str):
    key = f"{name}:{version}"
    if key not in _services:
        _services[key] = build(name, version, credentials=get_credentials(), cache_discovery=False)
    return _services[key]


async def _execute(label: str, call: Callable[[], Any]) -> Any:
    try:
        return await asyncio.to_thread(call)
    except HttpError as exc:
        status = getattr(exc.resp, "status", None)
        logger.error("Google API error during {} ({}): {}", label, status, exc)
        raise GoogleWorkspaceError(f"{label} failed: {exc}", status_code=status) from exc


# ---------------------------------------------------------------------------
# Drive: folders, sharing, documents
# ---------------------------------------------------------------------------
class GoogleDriveClient:
    def __init__(self, drive=None, docs=None, root_folder_id: str | None = None):
        self._drive = drive
        self._docs = docs
        self.root_folder_id = root_folder_id if root_folder_id is not None else settings.GOOGLE_DRIVE_ROOT_FOLDER_ID

    @property
    def drive(self):
        if self._drive is None:
            self._drive = get_service("drive", "v3")
        return self._drive

    @property
    def docs(self):
        if self._docs is None:
            self._docs = get_service("docs", "v1")
        return self._docs

    async def create_folder(self, name: str, parent_id: str | None = None) -> CreatedResource:
        parent = parent_id or self.root_folder_id
        body: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME}
        if parent:
            body["parents"] = [parent]
        data = await _execute(
            "create folder",
            lambda: self.drive.files().create(body=body, fields="id, name, webViewLink").execute(),
        )
        logger.info("Created Drive folder {} ({})", name, data["id"])
        return CreatedResource(id=data["id"], url=data.get("webViewLink") or folder_url(data["id"]))

    async def create_folder_tree(self, name: str, parent_id: str | None = None) -> FolderTree:
        root = await self.create_folder(name, parent_id)
        tree = FolderTree(root_id=root.id, root_url=root.url)
        for sub in CLIENT_SUBFOLDERS:
            folder = await self.create_folder(sub, root.id)
            slug = folder_slug(sub)
            tree.subfolders[slug] = folder.id
            tree.subfolder_urls[slug] = folder.url or folder_url(folder.id)
        logger.info("Created client folder structure for {} ({})", name, root.id)
        return tree

    async def share(self, resource_id: str, role: str = "reader") -> bool:
        """Make *resource_id* accessible to anyone with the link."""
        await _execute(
            "share",
            lambda: self.drive.permissions().create(
                fileId=resource_id,
                body={"type": "anyone", "role": role},
                fields="id",
            ).execute(),
        )
        return True

    async def create_document(
        self, title: str, content: str, parent_id: str | None = None
    ) -> CreatedResource:
        parent = parent_id or self.root_folder_id
        body: dict[str, Any] = {"name": title, "mimeType": DOCUMENT_MIME}
        if parent:
            body["parents"] = [parent]
        data = await _execute(
            "create document",
            lambda: self.drive.files().create(body=body, fields="id, name, webViewLink").execute(),
        )
        if content:
            await _execute(
                "insert document text",
                lambda: self.docs.documents().batchUpdate(
                    documentId=data["id"],
                    body={"requests": [{"insertText": {"location": {"index": 1}, "text": content}}]},
                ).execute(),
            )
        logger.info("Created document {} ({})", title, data["id"])
        return CreatedResource(id=data["id"], url=data.get("webViewLink"))


# ---------------------------------------------------------------------------
# Sheets: structured profile record
# ---------------------------------------------------------------------------
class GoogleSheetsClient:
    def __init__(self, sheets=None, drive=None):
        self._sheets = sheets
        self._drive = drive

    @property
    def sheets(self):
        if self._sheets is None:
            self._sheets = get_service("sheets", "v4")
        return self._sheets

    @property
    def drive(self):
        if self._drive is None:
            self._drive = get_service("drive", "v3")
        return self._drive

    async def create_record(
        self, title: str, rows: Sequence[Sequence[str]], parent_id: str | None = None
    ) -> CreatedResource:
        created = await _execute(
            "create spreadsheet",
            lambda: self.sheets.spreadsheets().create(
                body={"properties": {"title": title}},
                fields="spreadsheetId,spreadsheetUrl,sheets.properties.sheetId",
            ).execute(),
        )
        spreadsheet_id = created["spreadsheetId"]
        sheet_id = created["sheets"][0]["properties"]["sheetId"]

        if parent_id:
            await _execute(
                "move spreadsheet",
                lambda: self.drive.files().update(
                    fileId=spreadsheet_id, addParents=parent_id, fields="id, parents"
                ).execute(),
            )

        await _execute(
            "write spreadsheet rows",
            lambda: self.sheets.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range="A1",
                valueInputOption="RAW",
                body={"values": [list(r) for r in rows]},
            ).execute(),
        )

        await _execute(
            "format spreadsheet",
            lambda: self.sheets.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"requests": [
                    {
                        "repeatCell": {
                            "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                            "cell": {"userEnteredFormat": HEADER_BAND_FORMAT},
                            "fields": "userEnteredFormat(backgroundColor,textFormat)",
                        }
                    },
                    {
                        "autoResizeDimensions": {
                            "dimensions": {"sheetId": sheet_id, "dimension": "COLUMNS", "startIndex": 0, "endIndex": 2}
                        }
                    },
                ]},
            ).execute(),
        )
        logger.info("Created profile spreadsheet {} ({})", title, spreadsheet_id)
        return CreatedResource(id=spreadsheet_id, url=created.get("spreadsheetUrl"))
