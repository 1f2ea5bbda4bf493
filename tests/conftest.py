"""
Pytest fixtures for the registration cards app.
"""

import os
from io import BytesIO
from typing import Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Keep the suite independent of whatever the developer has exported
os.environ["API_BASE_URL"] = "http://api.test"
os.environ["ENABLE_BULK_UPLOAD"] = "true"
os.environ["ENABLE_OTP_GATE"] = "true"
os.environ.pop("PUBLIC_BASE_URL", None)
os.environ.pop("API_TOKEN", None)

from main import app
from app.core.auth import AuthContext
from app.core.otp import StubOtpGate, get_otp_gate
from app.models.registrations import BulkUploadResult, Registration
from app.wrapper.registration_client import RegistrationNotFound, get_client


def make_record(registration_id: int = 1, **overrides) -> dict:
    """A registration as the API returns it."""
    record = {
        "id": registration_id,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone_number": "+44 20 7946 0000",
        "company_name": "Analytical Engines Ltd",
        "designation": "Programmer",
        "industry": "Computing",
        "office_address": "12 St James's Square, London",
        "blood_group": "O+",
        "birth_date": "1815-12-10",
        "facebook": "",
        "linkedin": "https://linkedin.com/in/ada",
        "instagram": "",
        "company_website": "https://engines.example.com",
        "change_background_colour": "#ffeedd",
        "profile_pics": None,
        "company_logo": None,
        "created_at": "2024-01-01T10:00:00Z",
    }
    record.update(overrides)
    return record


def png_bytes(size=(40, 40), colour=(200, 30, 30, 255)) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", size, colour).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeRegistrationClient:
    """In-memory stand-in for RegistrationClient that records every call."""

    def __init__(self, records: Optional[List[dict]] = None):
        self.base_url = "http://api.test"
        self.auth = AuthContext()
        self.records: Dict[int, dict] = {r["id"]: r for r in (records or [])}
        self.images: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        # operation name -> exception to raise
        self.failures: Dict[str, Exception] = {}

    def _call(self, name: str, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def list_registrations(self) -> List[Registration]:
        self._call("list")
        return [Registration.model_validate(r) for r in self.records.values()]

    def get_registration(self, registration_id: int) -> Registration:
        self._call("get", registration_id)
        if registration_id not in self.records:
            raise RegistrationNotFound("Registration not found.", 404, '{"detail":"Not found."}')
        return Registration.model_validate(self.records[registration_id])

    def create_registration(self, data, files=None) -> Registration:
        self._call("create", data, files or [])
        new_id = max(self.records, default=0) + 1
        self.records[new_id] = dict(data, id=new_id)
        return Registration.model_validate(self.records[new_id])

    def update_registration(self, registration_id, data, files=None) -> Registration:
        self._call("update", registration_id, data, files or [])
        self.records[registration_id].update(data)
        return Registration.model_validate(self.records[registration_id])

    def delete_registration(self, registration_id: int) -> None:
        self._call("delete", registration_id)
        del self.records[registration_id]

    def bulk_upload(self, filename, stream, content_type) -> BulkUploadResult:
        self._call("bulk_upload", filename, stream.read(), content_type)
        return BulkUploadResult(created=[{"id": 100}, {"id": 101}])

    def fetch_image(self, url: str) -> bytes:
        self._call("fetch_image", url)
        return self.images[url]

    def ping(self) -> int:
        return len(self.list_registrations())


# --- Fixtures ---

@pytest.fixture
def fake_client() -> FakeRegistrationClient:
    return FakeRegistrationClient([
        make_record(1),
        make_record(2, first_name="Grace", last_name="Hopper", email="grace@example.com", blood_group=""),
        make_record(3, first_name="Alan", last_name="Turing", email="alan@example.com"),
    ])


@pytest.fixture
def otp_gate() -> StubOtpGate:
    return StubOtpGate(ttl_seconds=60)


@pytest.fixture
def client(fake_client, otp_gate) -> Generator[TestClient, None, None]:
    """
    Test client with the registrations API replaced by the in-memory fake.
    """
    app.dependency_overrides[get_client] = lambda: fake_client
    app.dependency_overrides[get_otp_gate] = lambda: otp_gate
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
