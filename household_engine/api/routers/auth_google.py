"""API Router for Google OAuth 2.0 flow."""

import json
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from household_engine.core.config import Settings, get_settings

logger = logging.getLogger(__name__)
router = APIRouter()

# Tokens live in a JSON file; this is a single-user local app

def _resolve_path(path_setting: str) -> Path:
    path = Path(path_setting)
    if not path.is_absolute():
        return Path.cwd() / path
    return path


def _save_tokens(credentials: Credentials, settings: Settings):
    token_path = _resolve_path(settings.GOOGLE_OAUTH_TOKENS_PATH)
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_data = {
        'token': credentials.token,
        'refresh_token': credentials.refresh_token,
        'token_uri': credentials.token_uri,
        'client_id': credentials.client_id,
        'client_secret': credentials.client_secret,
        'scopes': credentials.scopes
    }
    try:
        with open(token_path, 'w') as f:
            json.dump(token_data, f)
        logger.info(f"Saved Google OAuth tokens to {token_path}")
    except IOError as e:
        logger.error(f"Error saving Google OAuth tokens to {token_path}: {e}", exc_info=True)


def _load_tokens(settings: Settings) -> Optional[Credentials]:
    token_path = _resolve_path(settings.GOOGLE_OAUTH_TOKENS_PATH)
    if not token_path.exists():
        return None
    try:
        with open(token_path, 'r') as f:
            token_data = json.load(f)
        if not all(k in token_data for k in ['token', 'token_uri', 'client_id', 'client_secret', 'scopes']):
            logger.warning(f"Token file {token_path} is missing required fields. Ignoring.")
            return None
        creds = Credentials(**token_data)
        if creds.expired and creds.refresh_token:
            try:
                logger.info("Google OAuth token expired, attempting refresh.")
                creds.refresh(GoogleAuthRequest())
                _save_tokens(creds, settings)
            except RefreshError as e:
                logger.error(f"Error refreshing Google OAuth token: {e}. User must re-authenticate.", exc_info=True)
                return None
        logger.debug(f"Loaded Google OAuth tokens from {token_path}")
        return creds
    except (IOError, json.JSONDecodeError, ValueError) as e:
        logger.error(f"Error loading or parsing Google OAuth tokens from {token_path}: {e}", exc_info=True)
    return None


def _build_flow(settings: Settings) -> Flow:
    client_secret_path = _resolve_path(settings.GOOGLE_CLIENT_SECRET_JSON_PATH)
    if not client_secret_path.exists():
        logger.error(f"Google client_secret.json not found at {client_secret_path}")
        raise HTTPException(status_code=500, detail="Google OAuth client secret file not configured correctly.")
    return Flow.from_client_secrets_file(
        str(client_secret_path),
        scopes=settings.GOOGLE_CALENDAR_API_SCOPES,
        redirect_uri=settings.GOOGLE_OAUTH_REDIRECT_URI
    )


@router.get("/auth/google/login", name="google_login")
def google_oauth_login(settings: Settings = Depends(get_settings)):
    """Starts the Google OAuth 2.0 authorization flow."""
    flow = _build_flow(settings)
    authorization_url, _state = flow.authorization_url(
        access_type='offline', # Needed for a refresh token
        prompt='consent'
    )
    logger.info("Redirecting user to Google OAuth consent screen.")
    return RedirectResponse(authorization_url)


@router.get("/auth/google/callback", name="google_callback")
def google_oauth_callback(
    code: str = Query(...),
    settings: Settings = Depends(get_settings),
):
    """Exchanges the authorization code for tokens and stores them."""
    logger.info("Received callback from Google OAuth with authorization code.")
    flow = _build_flow(settings)
    try:
        flow.fetch_token(code=code)
    except Exception as e:
        logger.error(f"Error fetching Google OAuth token: {e}", exc_info=True)
        raise HTTPException(status_code=400, detail=f"Could not obtain token from Google: {e}")
    _save_tokens(flow.credentials, settings)
    return {"success": True, "message": "Successfully authenticated with Google."}


def get_google_credentials(settings: Settings = Depends(get_settings)) -> Optional[Credentials]:
    """Loads stored Google OAuth credentials. None means the user must log in."""
    return _load_tokens(settings)
