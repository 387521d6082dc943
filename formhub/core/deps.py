from fastapi import Cookie, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from formhub.core.config import settings
from formhub.core.errors import IdentityGatewayError, Unauthenticated
from formhub.schemas.auth import CallerIdentity
from formhub.services.identity_gateway import IdentityGateway, SupabaseIdentityGateway

bearer = HTTPBearer(auto_error=False)

def get_identity_gateway() -> IdentityGateway:
    return SupabaseIdentityGateway.from_settings(settings)

def get_access_token(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    cookie_token: str | None = Cookie(default=None, alias=settings.ACCESS_TOKEN_COOKIE_NAME),
) -> str | None:
    if creds and creds.credentials:
        return creds.credentials
    return cookie_token or None

def get_optional_caller(
    token: str | None = Depends(get_access_token),
    gateway: IdentityGateway = Depends(get_identity_gateway),
) -> CallerIdentity | None:
    # Invalid tokens fall back to an anonymous caller.
    if not token:
        return None
    try:
        return gateway.verify_token(token)
    except IdentityGatewayError:
        return None

def get_current_caller(
    token: str | None = Depends(get_access_token),
    gateway: IdentityGateway = Depends(get_identity_gateway),
) -> CallerIdentity:
    if not token:
        raise Unauthenticated("Authentication required")
    try:
        return gateway.verify_token(token)
    except IdentityGatewayError as exc:
        if exc.status_code >= 500:
            raise
        raise Unauthenticated("Invalid or expired token") from exc
