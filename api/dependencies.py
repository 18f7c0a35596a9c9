"""
FastAPI dependency providers.

Routers never construct clients themselves; tests replace these through
`app.dependency_overrides`.
"""

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from repositories.client import Client, get_supabase
from services.code_delivery import CodeSender, GatewayMailer
from services.lead_notifier import LeadNotifier, SmtpLeadNotifier
from services.session_tokens import ROLE_ADMIN, ROLE_LEAD, InvalidSessionToken, decode_token
from services.settings import Settings, load_settings

_bearer = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return load_settings()


def get_db() -> Client:
    return get_supabase()


def get_code_sender(settings: Settings = Depends(get_settings)) -> CodeSender:
    return GatewayMailer(settings)


def get_lead_notifier(settings: Settings = Depends(get_settings)) -> LeadNotifier:
    """
    Email-only notifier. Sheets pushes need a writer for the Google Sheets API,
    which is an external collaborator; override this provider to supply one.
    """
    return SmtpLeadNotifier(settings)


def require_lead_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Validate the Bearer token issued by /verify-code (role=lead)."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization token.")

    try:
        return decode_token(settings, credentials.credentials, role=ROLE_LEAD)
    except InvalidSessionToken as e:
        raise HTTPException(status_code=401, detail=str(e))


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Validate the Bearer token and require role=admin."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization token.")

    try:
        return decode_token(settings, credentials.credentials, role=ROLE_ADMIN)
    except InvalidSessionToken as e:
        raise HTTPException(status_code=401, detail=str(e))
