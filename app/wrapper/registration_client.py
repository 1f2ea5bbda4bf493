import requests
from urllib.parse import urlparse
from fastapi import Depends
from typing import BinaryIO, Dict, List, Optional, Tuple

from app.core.auth import AuthContext, get_auth_context
from app.core.config import API_BASE_URL, API_TIMEOUT, USER_AGENT, logger
from app.models.registrations import BulkUploadResult, Registration

# (field name, (filename, stream, content type))
FilePart = Tuple[str, Tuple[str, BinaryIO, str]]


def multipart_fields(data: Dict[str, str], files: Optional[List[FilePart]] = None) -> list:
    """
    Builds a requests `files` list so the body is always multipart/form-data,
    even when no file was selected.
    """
    parts = [(name, (None, value)) for name, value in data.items()]
    parts.extend(files or [])
    return parts


class RegistrationAPIError(Exception):
    """Base exception for registrations API errors."""

    # status this front end answers with when the error reaches a response
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RegistrationNotFound(RegistrationAPIError):
    """Raised when the API has no record with the requested id."""
    http_status = 404


class RegistrationUnauthorized(RegistrationAPIError):
    """Raised when the API rejects the request's credentials."""
    http_status = 401


class RegistrationTransportError(RegistrationAPIError):
    """Raised when the API cannot be reached."""
    pass


class RegistrationClient:
    """
    Client for the remote registrations REST API.
    Every call is a single request; nothing is cached or retried.
    """

    def __init__(
        self,
        auth: Optional[AuthContext] = None,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT,
    ):
        self.auth = auth or AuthContext()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _auth_headers(self, url: str) -> Dict[str, str]:
        """Credentials for the registrations API host only; other hosts get none."""
        if urlparse(url).netloc != urlparse(self.base_url).netloc:
            return {}
        return self.auth.headers()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, headers=self._auth_headers(url), **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise RegistrationTransportError(f"Could not reach the registrations API: {e}") from e
        self._validate_response(response)
        return response

    def _validate_response(self, response: requests.Response):
        """Raises the matching RegistrationAPIError for non-2xx responses."""
        if response.ok:
            return

        body = response.text or ""
        method = response.request.method if response.request is not None else ""
        logger.error(f"{method} {response.url} returned {response.status_code}: {body[:200]}")

        if response.status_code == 404:
            raise RegistrationNotFound("Registration not found.", response.status_code, body)
        if response.status_code in (401, 403):
            raise RegistrationUnauthorized(
                "The registrations API rejected the credentials.", response.status_code, body
            )
        raise RegistrationAPIError(body or f"Unexpected response: {response.status_code}", response.status_code, body)

    def list_registrations(self) -> List[Registration]:
        """Fetches every registration."""
        logger.info("Fetching registrations...")
        response = self._request("GET", "/api/registrations/")
        records = [Registration.model_validate(item) for item in response.json()]
        logger.info(f"Fetched {len(records)} registrations.")
        return records

    def get_registration(self, registration_id: int) -> Registration:
        logger.info(f"Fetching registration {registration_id}")
        response = self._request("GET", f"/api/registrations/{registration_id}/")
        return Registration.model_validate(response.json())

    def create_registration(self, data: Dict[str, str], files: Optional[List[FilePart]] = None) -> Registration:
        """Submits a new registration as multipart form data."""
        logger.info("Submitting new registration")
        response = self._request("POST", "/api/registrations/", files=multipart_fields(data, files))
        record = Registration.model_validate(response.json())
        logger.info(f"Registration created with ID: {record.id}")
        return record

    def update_registration(
        self,
        registration_id: int,
        data: Dict[str, str],
        files: Optional[List[FilePart]] = None,
    ) -> Registration:
        """Partially updates a registration; omitted fields keep their server value."""
        logger.info(f"Submitting update for registration {registration_id} ({', '.join(sorted(data)) or 'no fields'})")
        response = self._request(
            "PATCH",
            f"/api/registrations/{registration_id}/",
            files=multipart_fields(data, files),
        )
        logger.info(f"Registration {registration_id} updated successfully.")
        return Registration.model_validate(response.json())

    def delete_registration(self, registration_id: int) -> None:
        logger.info(f"Deleting registration {registration_id}")
        self._request("DELETE", f"/api/registrations/{registration_id}/")
        logger.info(f"Registration {registration_id} deleted.")

    def bulk_upload(self, filename: str, stream: BinaryIO, content_type: str) -> BulkUploadResult:
        """Hands a spreadsheet to the API, which parses it and creates the registrations."""
        logger.info(f"Uploading spreadsheet {filename} for bulk import")
        response = self._request(
            "POST",
            "/api/registrations/bulk_upload/",
            files=[("file", (filename, stream, content_type))],
        )
        result = BulkUploadResult.model_validate(response.json() if response.content else {})
        logger.info(f"Bulk upload created {len(result.created)} registrations.")
        return result

    def fetch_image(self, url: str) -> bytes:
        """Downloads an image referenced by a registration."""
        logger.debug(f"Fetching image {url}")
        try:
            response = self.session.get(url, timeout=self.timeout, headers=self._auth_headers(url))
        except requests.RequestException as e:
            logger.error(f"Image fetch failed for {url}: {e}")
            raise RegistrationTransportError(f"Could not fetch image: {e}") from e
        self._validate_response(response)
        return response.content

    def ping(self) -> int:
        """Lightweight upstream check; returns the number of registrations visible."""
        return len(self.list_registrations())


def get_client(auth: AuthContext = Depends(get_auth_context)) -> RegistrationClient:
    """Dependency provider for the registrations API client."""
    return RegistrationClient(auth)
