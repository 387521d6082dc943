"""Client for the external identity provider (Supabase GoTrue REST API).

The service never issues tokens itself: it verifies bearer tokens and proxies
account operations. Routes receive an ``IdentityGateway`` through the
``get_identity_gateway`` dependency so tests can swap in a fake.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from jose import JWTError

from formhub.core.config import Settings, settings
from formhub.core.errors import IdentityGatewayError
from formhub.core.security import decode_jwt
from formhub.schemas.auth import AuthSession, CallerIdentity

logger = logging.getLogger(__name__)


def identity_from_user_payload(user: dict[str, Any]) -> CallerIdentity:
    metadata = user.get("user_metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    user_id = str(user.get("id") or user.get("sub") or "").strip()
    if not user_id:
        raise IdentityGatewayError("Identity provider returned a user without id")
    return CallerIdentity(
        id=user_id,
        email=user.get("email") or None,
        email_verified=bool(user.get("email_confirmed_at") or metadata.get("email_verified")),
        name=metadata.get("name"),
        avatar=metadata.get("avatar"),
        metadata=metadata,
    )


class IdentityGateway:
    def verify_token(self, token: str) -> CallerIdentity:
        raise NotImplementedError

    def sign_up(self, email: str, password: str) -> AuthSession:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> AuthSession:
        raise NotImplementedError

    def sign_out(self, token: str | None) -> None:
        raise NotImplementedError

    def reset_password_email(self, email: str) -> None:
        raise NotImplementedError

    def update_password(self, token: str, new_password: str) -> None:
        raise NotImplementedError

    def update_user_metadata(self, token: str, metadata: dict[str, Any]) -> CallerIdentity:
        raise NotImplementedError


class SupabaseIdentityGateway(IdentityGateway):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        jwt_secret: str = "",
        jwt_audience: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = str(base_url or "").strip().rstrip("/")
        self.api_key = str(api_key or "").strip()
        self.jwt_secret = str(jwt_secret or "").strip()
        self.jwt_audience = jwt_audience or None
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SupabaseIdentityGateway":
        return cls(
            config.SUPABASE_URL,
            config.SUPABASE_ANON_KEY,
            jwt_secret=config.SUPABASE_JWT_SECRET,
            jwt_audience=config.SUPABASE_JWT_AUDIENCE,
            timeout=config.IDENTITY_TIMEOUT_SECONDS,
        )

    def _headers(self, token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict):
            for key in ("msg", "error_description", "message", "error"):
                value = body.get(key)
                if value:
                    return str(value)
        return f"Identity provider returned HTTP {response.status_code}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if not self.base_url:
            raise IdentityGatewayError("SUPABASE_URL is not configured", status_code=500)
        url = f"{self.base_url}/auth/v1{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, headers=self._headers(token), json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error("Identity provider request failed: %s %s: %s", method, path, exc)
            raise IdentityGatewayError(f"Identity provider unavailable: {exc}", status_code=500) from exc

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning("Identity provider rejected %s %s: %s", method, path, message)
            raise IdentityGatewayError(message)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise IdentityGatewayError("Identity provider returned invalid JSON", status_code=500) from exc
        return payload if isinstance(payload, dict) else {}

    def _session_from_payload(self, payload: dict[str, Any]) -> AuthSession:
        user = payload.get("user") if isinstance(payload.get("user"), dict) else None
        if user is None and payload.get("id"):
            # Sign-up awaiting email confirmation returns the bare user.
            user = payload
        return AuthSession(
            user=identity_from_user_payload(user) if user else None,
            token=payload.get("access_token") or None,
        )

    def verify_token(self, token: str) -> CallerIdentity:
        token = str(token or "").strip()
        if not token:
            raise IdentityGatewayError("Missing token", status_code=401)
        if self.jwt_secret:
            try:
                claims = decode_jwt(token, self.jwt_secret, audience=self.jwt_audience)
            except JWTError as exc:
                raise IdentityGatewayError("Invalid or expired token", status_code=401) from exc
            return identity_from_user_payload(claims)
        return identity_from_user_payload(self._request("GET", "/user", token=token))

    def sign_up(self, email: str, password: str) -> AuthSession:
        payload = self._request("POST", "/signup", json={"email": email, "password": password})
        return self._session_from_payload(payload)

    def sign_in(self, email: str, password: str) -> AuthSession:
        payload = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._session_from_payload(payload)

    def sign_out(self, token: str | None) -> None:
        if not token:
            return
        self._request("POST", "/logout", token=token)

    def reset_password_email(self, email: str) -> None:
        self._request("POST", "/recover", json={"email": email})

    def update_password(self, token: str, new_password: str) -> None:
        self._request("PUT", "/user", token=token, json={"password": new_password})

    def update_user_metadata(self, token: str, metadata: dict[str, Any]) -> CallerIdentity:
        payload = self._request("PUT", "/user", token=token, json={"data": metadata})
        return identity_from_user_payload(payload)
