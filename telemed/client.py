"""
HTTP client for the Telemed API.

The bearer token lives in an explicit ``Session`` that persists it through an
injected ``TokenStorage``, so callers choose where tokens are kept (memory, a
file, a keyring, ...).
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging

import httpx

logger = logging.getLogger(__name__)

class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, code: str, message: str, fields: Optional[dict] = None):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.fields = fields or {}
        super().__init__(f"{status_code} {code}: {message}")

class TokenStorage:
    """Where a Session keeps its token between runs."""

    def load(self) -> Optional[str]:
        raise NotImplementedError

    def save(self, token: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

class MemoryTokenStorage(TokenStorage):
    def __init__(self, token: Optional[str] = None):
        self._token = token

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None

class FileTokenStorage(TokenStorage):
    """Token kept as JSON in a file, e.g. ``~/.telemed/session.json``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError):
            logger.warning(f"Ignoring unreadable token file {self.path}")
            return None
        return data.get("token") if isinstance(data, dict) else None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

class Session:
    """Authentication state of one client."""

    def __init__(self, storage: Optional[TokenStorage] = None):
        self.storage = storage or MemoryTokenStorage()
        self._token = self.storage.load()

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: Optional[str]) -> None:
        self._token = token
        if token:
            self.storage.save(token)
        else:
            self.storage.clear()

    def auth_headers(self) -> Dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

class ApiClient:
    """Thin wrapper over the Telemed HTTP API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[Session] = None,
        http: Optional[httpx.Client] = None,
        api_prefix: str = "/api/v1",
    ):
        self.session = session or Session()
        self.http = http or httpx.Client(base_url=base_url, timeout=10.0)
        self.api_prefix = api_prefix.rstrip("/")

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def request(self, method: str, path: str, **kwargs) -> Any:
        url = path if path.startswith(self.api_prefix) else f"{self.api_prefix}/{path.lstrip('/')}"
        headers = {**self.session.auth_headers(), **kwargs.pop("headers", {})}

        response = self.http.request(method, url, headers=headers, **kwargs)
        if response.is_success:
            return response.json() if response.content else None
        raise self._error_from(response)

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return ApiError(
            status_code=response.status_code,
            code=body.get("error", "error"),
            message=body.get("message") or response.reason_phrase,
            fields=body.get("fields"),
        )

    # Auth
    def signup(self, **payload) -> Dict[str, Any]:
        return self.request("POST", "/auth/signup", json=payload)["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.session.set_token(data["token"])
        return data["user"]

    def logout(self) -> None:
        self.session.set_token(None)

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/me")

    # Resources
    def list_doctors(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"category": category} if category else None
        return self.request("GET", "/doctors", params=params)["doctors"]

    def get_doctor(self, doctor_id: int) -> Dict[str, Any]:
        return self.request("GET", f"/doctors/{doctor_id}")["doctor"]

    def list_patients(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/patients")["patients"]

    def my_patient_profile(self) -> Dict[str, Any]:
        return self.request("GET", "/patients/me")["patient"]

    def list_consultations(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/consultations")["consultations"]
