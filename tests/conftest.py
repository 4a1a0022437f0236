"""Shared test fixtures for the onboarding bot test suite."""

import asyncio
import json
import uuid
from unittest.mock import AsyncMock

import pytest

from onboard_bot.domain.collaborators import Contact, CreatedResource, FolderTree, Invitation
from onboard_bot.domain.services.provisioning import ProvisioningOrchestrator
from onboard_bot.domain.session_store import InMemorySessionStore


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


# --------------------------------------------------------------------------- #
# Fakes
# --------------------------------------------------------------------------- #

def extraction(message="", extracted=None, next_step=None) -> str:
    """Raw extractor output the way the model returns it."""
    payload = {"message": message, "extracted": extracted or {}}
    if next_step is not None:
        payload["next_step"] = next_step
    return json.dumps(payload)


class ScriptedGateway:
    """Returns queued raw outputs in order; records every prompt it was given."""

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.calls = []

    async def extract(self, system_prompt, history, message):
        self.calls.append({"prompt": system_prompt, "history": list(history), "message": message})
        out = self.outputs.pop(0)
        if isinstance(out, BaseException):
            raise out
        return out


class FakeHistory:
    def __init__(self):
        self.messages = {}

    async def recent(self, subject_key, limit=40):
        return list(self.messages.get(subject_key, []))[-limit:]

    async def append(self, subject_key, role, text, channel="whatsapp"):
        self.messages.setdefault(subject_key, []).append({"role": role, "text": text})


class FakeMessenger:
    def __init__(self):
        self.sent = []

    async def send(self, text, recipient, channel="whatsapp"):
        self.sent.append((recipient, channel, text))

    def texts(self, recipient=None):
        return [t for r, _, t in self.sent if recipient is None or r == recipient]


class FakeDirectory:
    def __init__(self):
        self.clients = {}
        self.contacts = {}
        self.updates = []

    async def create_client(self, profile):
        client_id = uuid.uuid4()
        self.clients[client_id] = profile
        return client_id

    async def update_client(self, client_id, **fields):
        self.updates.append((client_id, fields))

    async def get_contact(self, subject_key):
        return self.contacts.get(subject_key)

    async def upsert_contact(self, subject_key, *, name=None, client_id=None, channel=None):
        contact = self.contacts.get(subject_key) or Contact(subject_key=subject_key)
        if name:
            contact.name = name
        if client_id:
            contact.client_id = client_id
        if channel:
            contact.channel = channel
        self.contacts[subject_key] = contact
        return contact


class FakeDrive:
    """Folder creator, link sharer and document creator in one."""

    def __init__(self):
        self.documents = []
        self.shares = []

    async def create_folder_tree(self, name, parent_id=None):
        return FolderTree(
            root_id="fld-root",
            root_url="https://drive.example/fld-root",
            subfolders={"brand_assets": "fld-brand"},
            subfolder_urls={"brand_assets": "https://drive.example/fld-brand"},
        )

    async def share(self, resource_id, role="reader"):
        self.shares.append((resource_id, role))
        return True

    async def create_document(self, title, content, parent_id=None):
        doc_id = f"doc-{len(self.documents) + 1}"
        self.documents.append({"id": doc_id, "title": title, "content": content, "parent_id": parent_id})
        return CreatedResource(id=doc_id, url=f"https://docs.example/{doc_id}")


class FakeRecords:
    def __init__(self):
        self.records = []

    async def create_record(self, title, rows, parent_id=None):
        self.records.append({"title": title, "rows": rows, "parent_id": parent_id})
        return CreatedResource(id="sheet-1", url="https://sheets.example/sheet-1")


class FakeInvitations:
    def __init__(self):
        self.calls = []

    async def create_invitation(self, client_name, contact, platforms, message):
        self.calls.append({"client_name": client_name, "contact": contact, "platforms": list(platforms)})
        n = len(self.calls)
        return Invitation(
            invite_id=f"inv-{n}",
            invite_url=f"https://leadsie.example/inv-{n}",
            platforms=list(platforms),
        )


class Collaborators:
    def __init__(self):
        self.store = InMemorySessionStore()
        self.directory = FakeDirectory()
        self.drive = FakeDrive()
        self.records = FakeRecords()
        self.invitations = FakeInvitations()
        self.history = FakeHistory()
        self.messenger = FakeMessenger()
        self.notifier = AsyncMock()

    def orchestrator(self, **overrides) -> ProvisioningOrchestrator:
        kwargs = dict(
            store=self.store,
            directory=self.directory,
            folders=self.drive,
            sharer=self.drive,
            documents=self.drive,
            records=self.records,
            invitations=self.invitations,
            history=self.history,
            notifier=self.notifier,
            fallback_folder_id="fld-fallback",
            step_timeout=5,
        )
        kwargs.update(overrides)
        return ProvisioningOrchestrator(**kwargs)


@pytest.fixture
def collab() -> Collaborators:
    return Collaborators()


@pytest.fixture
def full_answers() -> dict:
    """Answers for a client who went through every slot."""
    return {
        "name": "Maria",
        "business_name": "Acme Bakery",
        "website": "acmebakery.com",
        "business_description": "Artisan bakery",
        "product_service": "Custom cakes",
        "pricing": "$40-$120 per cake",
        "avg_transaction_value": "$65",
        "target_audience": "Parents planning birthdays",
        "location": "Austin, TX",
        "competitors": "Sweet Spot, Cake Co; Flour Power",
        "company_size": "6 people, $400k/yr",
        "sales_process": "partially online + offline",
        "sales_cycle": "1-2 weeks",
        "channels_have": "Instagram and Google Ads",
        "channels_need": "TikTok",
        "current_campaigns": "Boosted posts, $300/mo",
        "monthly_budget": "$2,500",
        "goals": "More custom orders\nGrow wedding segment",
        "pains": "Inconsistent lead flow",
        "additional_info": "Peak season is May",
    }
