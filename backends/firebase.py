"""
Firebase Collaborator — Firebase Auth + Firestore over their REST APIs.

The REST surface has no live listener, so listen_jobs/listen_feedback raise
SubscriptionError and the core falls back to polling fetch_jobs/fetch_feedback.
"""

import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx

from backends.base import (
    AuthError,
    NotConfiguredError,
    RemoteCollaborator,
    RemoteError,
    RemoteUser,
    SubscriptionError,
)
from backends.firestore_codec import clean_data, decode_document, encode_fields, encode_value
from backends.subscription import Subscription
from models.employer import Employer
from tools.log import get_logger
from tools.retry import retry
from tools.timeutil import utc_now

log = get_logger(__name__)

AUTH_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{action}"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
# Refresh this long before the ID token's stated expiry
TOKEN_MARGIN = timedelta(minutes=5)
FIRESTORE_ROOT = "https://firestore.googleapis.com/v1/"
DATABASE = "projects/{project}/databases/(default)"

JOBS = "jobs"
EMPLOYERS = "employers"
FEEDBACK = "feedback"


def _error_message(resp: httpx.Response) -> str:
    """Pull the error message out of a Google API error body."""
    try:
        return resp.json().get("error", {}).get("message", "") or f"HTTP {resp.status_code}"
    except ValueError:
        return f"HTTP {resp.status_code}"


class FirebaseCollaborator(RemoteCollaborator):
    """RemoteCollaborator backed by a Firebase project."""

    def __init__(
        self,
        api_key: str,
        project_id: str,
        timeout: int = 30,
        max_retries: int = 3,
        client: httpx.AsyncClient = None,
    ) -> None:
        self.api_key = api_key
        self.project_id = project_id
        self.max_retries = max_retries
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )
        self._database = DATABASE.format(project=project_id)
        self._user: Optional[RemoteUser] = None
        self._id_token: str = ""
        self._refresh_token: str = ""
        self._token_expiry: Optional[datetime] = None
        self._auth_listeners: list[Callable[[Optional[RemoteUser]], None]] = []

    def is_enabled(self) -> bool:
        return bool(self.api_key and self.project_id)

    # --- HTTP plumbing ---
    def _require_enabled(self) -> None:
        if not self.is_enabled():
            raise NotConfiguredError("Firebase is not configured")

    def _doc_name(self, collection: str, doc_id: str) -> str:
        return f"{self._database}/documents/{collection}/{doc_id}"

    def _headers(self) -> dict:
        if self._id_token:
            return {"Authorization": f"Bearer {self._id_token}"}
        return {}

    @retry(retryable=(httpx.TransportError,))
    async def _send(self, method: str, url: str, json: dict = None) -> httpx.Response:
        return await self._client.request(
            method, url, json=json, params={"key": self.api_key}, headers=self._headers()
        )

    async def _authorized(self, method: str, url: str, json: dict = None) -> httpx.Response:
        """
        Send a request with a fresh ID token. An expiring token is refreshed
        up front; a 401 triggers one refresh and a single resend.
        """
        await self._ensure_token()
        try:
            resp = await self._send(method, url, json=json)
            if resp.status_code == 401 and self._refresh_token:
                log.info("ID token rejected, refreshing")
                await self._refresh_id_token()
                resp = await self._send(method, url, json=json)
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e
        return resp

    async def _call(self, method: str, url: str, json: dict = None) -> httpx.Response:
        """Send a request; transport failures and error statuses become RemoteError."""
        resp = await self._authorized(method, url, json=json)
        if resp.status_code >= 400:
            raise RemoteError(f"{method} {url} returned {resp.status_code}: {_error_message(resp)}")
        return resp

    async def _commit(self, writes: list[dict]) -> None:
        await self._call("POST", f"{FIRESTORE_ROOT}{self._database}/documents:commit", json={"writes": writes})

    async def _run_query(self, collection: str, order_by: str) -> list[dict]:
        body = {
            "structuredQuery": {
                "from": [{"collectionId": collection}],
                "orderBy": [{"field": {"fieldPath": order_by}, "direction": "DESCENDING"}],
            }
        }
        resp = await self._call("POST", f"{FIRESTORE_ROOT}{self._database}/documents:runQuery", json=body)
        # Entries without "document" only carry a readTime
        return [decode_document(entry["document"]) for entry in resp.json() if entry.get("document")]

    # --- Credentials ---
    async def _authenticate(self, action: str, email: str, password: str) -> RemoteUser:
        self._require_enabled()
        body = {"email": email, "password": password, "returnSecureToken": True}
        try:
            resp = await self._send("POST", AUTH_URL.format(action=action), json=body)
        except httpx.HTTPError as e:
            raise RemoteError(f"accounts:{action} failed: {e}") from e
        if resp.status_code == 400:
            # EMAIL_EXISTS, INVALID_LOGIN_CREDENTIALS, WEAK_PASSWORD, ...
            raise AuthError(_error_message(resp))
        if resp.status_code >= 400:
            raise RemoteError(f"accounts:{action} returned {resp.status_code}: {_error_message(resp)}")

        data = resp.json()
        self._store_tokens(data.get("idToken", ""), data.get("refreshToken", ""), data.get("expiresIn"))
        self._user = RemoteUser(uid=data["localId"], email=data.get("email", email))
        self._notify_auth()
        return self._user

    def _store_tokens(self, id_token: str, refresh_token: str, expires_in) -> None:
        self._id_token = id_token
        self._refresh_token = refresh_token
        try:
            self._token_expiry = utc_now() + timedelta(seconds=int(expires_in)) - TOKEN_MARGIN
        except (TypeError, ValueError):
            self._token_expiry = None

    def _forget_credentials(self) -> None:
        self._store_tokens("", "", None)
        self._user = None

    async def _ensure_token(self) -> None:
        if self._refresh_token and self._token_expiry and utc_now() >= self._token_expiry:
            await self._refresh_id_token()

    async def _refresh_id_token(self) -> None:
        """
        Trade the refresh token for a new ID token.

        A rejected refresh token ends the session: credentials are dropped
        and auth listeners see None.

        Raises:
            AuthError: If the refresh token was rejected.
            RemoteError: If the token service could not be reached.
        """
        try:
            resp = await self._client.post(
                TOKEN_URL,
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"token refresh failed: {e}") from e
        if resp.status_code >= 500:
            raise RemoteError(f"token refresh returned {resp.status_code}: {_error_message(resp)}")
        if resp.status_code >= 400:
            message = _error_message(resp)
            log.warning("Session expired (%s), signing out", message)
            self._forget_credentials()
            self._notify_auth()
            raise AuthError(message)

        data = resp.json()
        self._store_tokens(
            data.get("id_token", ""),
            data.get("refresh_token", self._refresh_token),
            data.get("expires_in"),
        )

    async def sign_up(self, company_name: str, email: str, password: str) -> Employer:
        user = await self._authenticate("signUp", email, password)
        employer = Employer(id=user.uid, company_name=company_name, email=user.email)
        await self._commit([{
            "update": {
                "name": self._doc_name(EMPLOYERS, user.uid),
                "fields": encode_fields(employer.to_record()),
            }
        }])
        log.info("Registered employer %s (%s)", employer.company_name, employer.id)
        return employer

    async def sign_in(self, email: str, password: str) -> RemoteUser:
        return await self._authenticate("signInWithPassword", email, password)

    async def sign_out(self) -> None:
        self._require_enabled()
        # ID tokens are bearer tokens: signing out is forgetting them
        self._forget_credentials()
        self._notify_auth()

    def on_auth_changed(self, callback: Callable[[Optional[RemoteUser]], None]) -> Subscription:
        self._auth_listeners.append(callback)
        callback(self._user)

        def remove() -> None:
            if callback in self._auth_listeners:
                self._auth_listeners.remove(callback)

        return Subscription(cancel=remove, name="firebase-auth")

    def _notify_auth(self) -> None:
        for listener in list(self._auth_listeners):
            try:
                listener(self._user)
            except Exception as e:
                log.error("Auth listener failed: %s", e)

    async def get_employer(self, uid: str) -> Optional[Employer]:
        self._require_enabled()
        url = f"{FIRESTORE_ROOT}{self._doc_name(EMPLOYERS, uid)}"
        resp = await self._authorized("GET", url)
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise RemoteError(f"GET {url} returned {resp.status_code}: {_error_message(resp)}")
        record = decode_document(resp.json())
        record["id"] = uid
        return Employer.model_validate(record)

    # --- Jobs ---
    async def listen_jobs(self, callback, on_error) -> Subscription:
        raise SubscriptionError("Firestore REST API has no live listener")

    async def fetch_jobs(self) -> list[dict]:
        self._require_enabled()
        return await self._run_query(JOBS, "createdAt")

    async def add_job(self, job: dict, employer_id: str) -> str:
        self._require_enabled()
        job_id = job.get("id") or f"job-{uuid.uuid4().hex}"
        data = clean_data({**job, "id": job_id, "employerId": employer_id}) or {}
        await self._commit([{
            "update": {"name": self._doc_name(JOBS, job_id), "fields": encode_fields(data)},
            "currentDocument": {"exists": False},
            "updateTransforms": [{"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"}],
        }])
        log.info("Created remote job %s", job_id)
        return job_id

    async def update_job(self, job_id: str, data: dict) -> None:
        self._require_enabled()
        # Masked fields missing from the cleaned payload are deleted remotely
        fields = clean_data(data) or {}
        await self._commit([{
            "update": {"name": self._doc_name(JOBS, job_id), "fields": encode_fields(fields)},
            "updateMask": {"fieldPaths": sorted(data)},
            "currentDocument": {"exists": True},
            "updateTransforms": [{"fieldPath": "updatedAt", "setToServerValue": "REQUEST_TIME"}],
        }])

    async def delete_job(self, job_id: str) -> None:
        self._require_enabled()
        await self._commit([{"delete": self._doc_name(JOBS, job_id)}])

    async def add_application(self, job_id: str, application: dict) -> None:
        self._require_enabled()
        await self._commit([{
            "transform": {
                "document": self._doc_name(JOBS, job_id),
                "fieldTransforms": [{
                    "fieldPath": "applications",
                    "appendMissingElements": {"values": [encode_value(clean_data(application) or {})]},
                }],
            },
            "currentDocument": {"exists": True},
        }])

    # --- Feedback board ---
    async def add_feedback(self, feedback: dict) -> None:
        self._require_enabled()
        feedback_id = feedback.get("id") or f"fb-{uuid.uuid4().hex}"
        data = clean_data({**feedback, "id": feedback_id}) or {}
        await self._commit([{
            "update": {"name": self._doc_name(FEEDBACK, feedback_id), "fields": encode_fields(data)},
            "currentDocument": {"exists": False},
        }])

    async def fetch_feedback(self) -> list[dict]:
        self._require_enabled()
        return await self._run_query(FEEDBACK, "date")

    async def listen_feedback(self, callback, on_error) -> Subscription:
        raise SubscriptionError("Firestore REST API has no live listener")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
