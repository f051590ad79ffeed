"""Client-side session and a thin API client.

The token and the cached profile live in a :class:`UserSession` that the
caller owns and passes in; nothing is kept in module globals. Persisting the
session is an explicit ``save``/``load`` on a JSON file.
"""
import json
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional

import httpx
from jose import JWTError, jwt

from chalanbook import errors
from chalanbook.assembly import ChalanDraft

logger = logging.getLogger(__name__)

_ERRORS = {cls.__name__: cls for cls in (
    errors.DuplicateUsername, errors.RootConflict, errors.InvalidCredentials, errors.MissingToken,
    errors.InvalidToken, errors.Forbidden, errors.NotFound, errors.ServerError,
)}


@dataclass
class UserSession:
    token: Optional[str] = None
    profile: Optional[dict] = None

    @property
    def expired(self) -> bool:
        if not self.token:
            return True
        try:
            exp = jwt.get_unverified_claims(self.token).get("exp")
        except JWTError:
            return True
        return exp is not None and exp <= time.time()

    @property
    def authenticated(self) -> bool:
        return not self.expired

    def auth_headers(self) -> dict:
        if self.expired:
            raise errors.MissingToken("Not logged in or session expired")
        return {"Authorization": f"Bearer {self.token}"}

    def clear(self):
        self.token = None
        self.profile = None

    def save(self, path):
        Path(path).write_text(json.dumps(asdict(self)))

    @classmethod
    def load(cls, path) -> "UserSession":
        path = Path(path)
        if not path.exists():
            return cls()
        data = json.loads(path.read_text())
        return cls(token=data.get("token"), profile=data.get("profile"))


def _raise_for_error(resp: httpx.Response):
    if not resp.is_error:
        return
    try:
        body = resp.json()
    except ValueError:
        body = {}
    error_cls = _ERRORS.get(body.get("code"), errors.ServerError)
    raise error_cls(body.get("detail"))


class ApiClient:
    """Calls the HTTP API with the session's token.

    ``http`` is any ``httpx.Client`` with ``base_url`` set (a FastAPI
    ``TestClient`` works too).
    """

    def __init__(self, http: httpx.Client, session: UserSession):
        self.http = http
        self.session = session

    def _call(self, method: str, path: str, auth: bool = True, **kwargs):
        headers = self.session.auth_headers() if auth else {}
        resp = self.http.request(method, path, headers=headers, **kwargs)
        _raise_for_error(resp)
        return resp.json()

    def _start_session(self, token: str) -> dict:
        self.session.token = token
        self.session.profile = self.me()
        return self.session.profile

    def register(self, username, password, email="", role=None, is_root=False) -> dict:
        body = {"username": username, "password": password, "email": email, "isRoot": is_root}
        if role:
            body["role"] = role
        return self._start_session(self._call("POST", "/auth/register", auth=False, json=body)["token"])

    def login(self, username, password) -> dict:
        body = {"username": username, "password": password}
        return self._start_session(self._call("POST", "/auth/login", auth=False, json=body)["token"])

    def logout(self):
        self.session.clear()

    def me(self) -> dict:
        return self._call("GET", "/users/me")

    def delete_account(self):
        self._call("DELETE", "/users/me")
        self.session.clear()

    def list(self, kind: str, **params) -> List[dict]:
        params = {k: v for k, v in params.items() if v is not None}
        return self._call("GET", f"/{kind}", params=params)

    def create(self, kind: str, data: dict) -> dict:
        return self._call("POST", f"/{kind}", json=data)

    def update(self, kind: str, id: int, data: dict) -> dict:
        return self._call("PUT", f"/{kind}/{id}", json=data)

    def delete(self, kind: str, id: int) -> dict:
        return self._call("DELETE", f"/{kind}/{id}")

    def delete_client(self, client_id: int, cascade: bool = True) -> dict:
        return self._call("DELETE", f"/clients/{client_id}", params={"cascade": cascade})

    def new_chalan(self, client_id: int, **header) -> ChalanDraft:
        serial = self._call("GET", f"/clients/{client_id}/next-serial")["serialNumber"]
        return ChalanDraft(client_id, serial_number=serial, **header)

    def suggestions(self, client_id: int, text: str) -> List[str]:
        return self._call("GET", f"/clients/{client_id}/suggestions", params={"q": text})

    def submit(self, draft: ChalanDraft) -> dict:
        chalan = self.create("chalans", draft.to_payload())
        if draft.serial_number is not None and chalan["serialNumber"] != draft.serial_number:
            logger.warning("chalan %s saved with serial %s, draft showed %s",
                           chalan["id"], chalan["serialNumber"], draft.serial_number)
        return chalan
