import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

import requests
from requests import exceptions as requests_exceptions


logger = logging.getLogger("botcop.client")


class BackendError(Exception):
    pass


class AuthenticationError(BackendError):
    def __init__(self, message: str, payload: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code


class ApiError(BackendError):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"API Error ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


class TransportError(BackendError):
    pass


@dataclass
class BotCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"BotCredentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class Session:
    actor_identity: str
    bearer_token: Optional[str] = None
    actor_id: Any = None


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except Exception:
        data = None
    if isinstance(data, dict):
        message = data.get("error") or data.get("message") or data.get("hint")
        if message:
            return str(message)
    return resp.text or resp.reason or "no response body"


def _json_or_ack(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except Exception:
        return {"ok": True}


class SessionManager:
    """Holds the bearer token and identity for one actor.

    The session object is replaced wholesale on every successful sign-in;
    a failed sign-in leaves the previous session untouched.
    """

    def __init__(
        self,
        base_url: str,
        credentials: BotCredentials,
        http: Optional[requests.Session] = None,
        timeout: float = 30,
        activity=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.http = http or requests.Session()
        self.timeout = timeout
        self.activity = activity
        self.session = Session(actor_identity=credentials.username)

    @property
    def token(self) -> Optional[str]:
        return self.session.bearer_token

    @property
    def actor_id(self) -> Any:
        return self.session.actor_id

    def invalidate(self) -> None:
        self.session = Session(actor_identity=self.credentials.username, actor_id=self.session.actor_id)

    def _note(self, message: str, kind: str = "info") -> None:
        if self.activity is not None:
            self.activity.record(message, kind)
        else:
            logger.info(message)

    def _signin(self) -> requests.Response:
        return self.http.request(
            "POST",
            f"{self.base_url}/api/auth/signin",
            headers={"Content-Type": "application/json"},
            json={"username": self.credentials.username, "password": self.credentials.password},
            timeout=self.timeout,
        )

    async def authenticate(self) -> bool:
        self._note(f'Authenticating as "{self.credentials.username}"...')
        try:
            resp = await asyncio.to_thread(self._signin)
        except requests_exceptions.RequestException as e:
            self._note(f"Authentication error: {e}", "error")
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            detail = _error_message(resp)
            self._note(f"Authentication error: {detail}", "error")
            raise AuthenticationError(
                f"Authentication failed: {detail}",
                payload=resp.text,
                status_code=resp.status_code,
            )

        data = _json_or_ack(resp)
        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if not token or not isinstance(user, dict) or user.get("id") is None:
            self._note("Authentication error: sign-in response missing token or user id", "error")
            raise AuthenticationError(
                "Authentication failed: sign-in response missing token or user id",
                payload=resp.text,
                status_code=resp.status_code,
            )

        self.session = Session(
            actor_identity=self.credentials.username,
            bearer_token=str(token),
            actor_id=user["id"],
        )
        self._note(f"Authenticated successfully! User ID: {self.session.actor_id}", "success")
        return True


class BackendClient:
    """JSON client for the backend API with bearer auth and bounded retries.

    Transient failures (transport errors and non-2xx responses other than a
    repeated 401) are retried up to ``max_retries`` times with a fixed delay.
    A 401 drops the token and re-authenticates at most once per call; that
    retry does not consume the transient-failure budget.
    """

    def __init__(
        self,
        credentials: BotCredentials,
        base_url: str,
        http: Optional[requests.Session] = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 30,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        activity=None,
    ):
        self.base_url = base_url.strip().rstrip("/")
        self.http = http or requests.Session()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.sleep = sleep
        self.activity = activity
        self.auth = SessionManager(
            base_url=self.base_url,
            credentials=credentials,
            http=self.http,
            timeout=timeout,
            activity=activity,
        )

    @property
    def actor_id(self) -> Any:
        return self.auth.actor_id

    @property
    def username(self) -> str:
        return self.auth.credentials.username

    async def authenticate(self) -> bool:
        return await self.auth.authenticate()

    def _note(self, message: str, kind: str = "info") -> None:
        if self.activity is not None:
            self.activity.record(message, kind)
        else:
            logger.warning(message)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _send(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]]) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.auth.token}",
            "Content-Type": "application/json",
        }
        return self.http.request(
            method,
            self._url(endpoint),
            headers=headers,
            json=payload,
            timeout=self.timeout,
        )

    async def request(self, endpoint: str, method: str = "GET", payload: Optional[Dict[str, Any]] = None) -> Any:
        retries = 0
        reauths = 0
        while True:
            if not self.auth.token:
                await self.auth.authenticate()

            try:
                try:
                    resp = await asyncio.to_thread(self._send, method, endpoint, payload)
                except requests_exceptions.RequestException as e:
                    raise TransportError(f"Transport error for {method} {endpoint}: {e}") from e

                if resp.status_code == 401:
                    self.auth.invalidate()
                    if reauths >= 1:
                        raise ApiError(401, _error_message(resp))
                    reauths += 1
                    self._note("Token expired, re-authenticating...", "warning")
                    continue

                if not 200 <= resp.status_code < 300:
                    raise ApiError(resp.status_code, _error_message(resp))

                return _json_or_ack(resp)
            except (ApiError, TransportError) as e:
                if isinstance(e, ApiError) and e.status_code == 401:
                    raise
                if retries >= self.max_retries:
                    raise
                retries += 1
                self._note(f"Request failed, retrying ({retries}/{self.max_retries})...", "warning")
                await self.sleep(self.retry_delay)

    async def search_users(self, term: str) -> Any:
        if len(term.strip()) < 2:
            raise ValueError("Search term must be at least 2 characters.")
        return await self.request(f"/api/users/search?q={quote(term.strip())}")

    async def open_direct_chat(self, user_id: Any) -> Any:
        data = await self.request("/api/chats/direct", method="POST", payload={"otherUserId": user_id})
        chat_id = data.get("chatId") if isinstance(data, dict) else None
        if chat_id is None:
            raise BackendError("Direct chat response missing chatId")
        return chat_id

    async def send_chat_message(self, chat_id: Any, content: str) -> Any:
        if not content:
            raise ValueError("Message content must be provided.")
        return await self.request(
            f"/api/chats/{chat_id}/messages",
            method="POST",
            payload={"content": content, "type": "text"},
        )

    async def list_posts(self) -> Any:
        return await self.request("/api/posts")

    async def create_comment(self, post_id: Any, content: str) -> Any:
        if not content:
            raise ValueError("Comment content must be provided.")
        return await self.request("/api/comments", method="POST", payload={"post_id": post_id, "content": content})
