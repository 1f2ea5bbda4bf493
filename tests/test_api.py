"""
Tests for the JSON endpoints: health, handshake and /api/v1/registrations.
"""

from io import BytesIO

from fastapi.testclient import TestClient
from PIL import Image

from app.wrapper.registration_client import RegistrationTransportError, RegistrationUnauthorized
from conftest import make_record


class TestHealth:

    def test_health(self, client: TestClient):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "app": "Registration Cards"}

    def test_handshake(self, client: TestClient):
        response = client.get("/api/handshake")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["registration_count"] == 3
        assert body["authenticated"] is False

    def test_handshake_failure(self, client: TestClient, fake_client):
        fake_client.failures["list"] = RegistrationTransportError("refused")
        response = client.get("/api/handshake")
        assert response.status_code == 503
        assert response.json()["status"] == "error"
        assert response.json()["message"] == "refused"


class TestRegistrationEndpoints:

    def test_list(self, client: TestClient):
        response = client.get("/api/v1/registrations/")
        assert response.status_code == 200
        body = response.json()
        assert [r["id"] for r in body] == [1, 2, 3]
        assert set(body[0]) == {"id", "first_name", "last_name", "email", "phone_number", "blood_group"}

    def test_get(self, client: TestClient):
        response = client.get("/api/v1/registrations/3")
        assert response.status_code == 200
        assert response.json()["first_name"] == "Alan"
        assert response.json()["profile_pics"] is None

    def test_not_found_is_json(self, client: TestClient):
        response = client.get("/api/v1/registrations/99")
        assert response.status_code == 404
        assert response.json() == {"error": "RegistrationNotFound", "message": "Registration not found."}

    def test_unauthorized(self, client: TestClient, fake_client):
        fake_client.failures["list"] = RegistrationUnauthorized("Invalid token.", 401, "")
        response = client.get("/api/v1/registrations/")
        assert response.status_code == 401
        assert response.json()["error"] == "RegistrationUnauthorized"

    def test_vcard(self, client: TestClient):
        response = client.get("/api/v1/registrations/1/vcard")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/vcard")
        assert response.headers["content-disposition"] == 'inline; filename="Ada_Lovelace.vcf"'
        assert response.text.startswith("BEGIN:VCARD\r\nVERSION:3.0\r\n")
        assert "FN:Ada Lovelace" in response.text

    def test_card_png(self, client: TestClient):
        response = client.get("/api/v1/registrations/1/card.png")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert Image.open(BytesIO(response.content)).width == 768

    def test_card_render_failure(self, client: TestClient, fake_client):
        fake_client.records[1]["company_logo"] = "media/logo.png"
        fake_client.failures["fetch_image"] = RegistrationTransportError("timed out")
        response = client.get("/api/v1/registrations/1/card.png?share=true")
        assert response.status_code == 502
        assert response.json()["detail"] == {"error": "Card Render Error", "message": "Could not generate image card."}

    def test_qr_png(self, client: TestClient):
        response = client.get("/api/v1/registrations/2/qr.png")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert Image.open(BytesIO(response.content)).size == (180, 180)

    def test_vcard_for_non_latin_name(self, client: TestClient, fake_client):
        fake_client.records[9] = make_record(9, first_name="李", last_name="明")
        response = client.get("/api/v1/registrations/9/vcard")
        assert response.status_code == 200
        assert response.headers["content-disposition"] == (
            "inline; filename=\"download.vcf\"; filename*=UTF-8''%E6%9D%8E_%E6%98%8E.vcf"
        )
        assert "FN:李 明" in response.text

    def test_card_png_for_non_latin_name(self, client: TestClient, fake_client):
        fake_client.records[9] = make_record(9, first_name="Иван", last_name="Петров")
        response = client.get("/api/v1/registrations/9/card.png?share=true")
        assert response.status_code == 200
        assert response.headers["content-disposition"].startswith('inline; filename="Card.png"')
