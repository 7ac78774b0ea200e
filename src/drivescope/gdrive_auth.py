# gdrive_auth.py
import json
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from pydantic import ValidationError

from .exceptions import AuthenticationRequiredError
from .storage.dto import TokenSet

# The scopes for Google Drive API
SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

TokenRefreshHandler = Callable[[TokenSet], None]


class RefreshNotifyingCredentials(Credentials):
    """
    google-auth user credentials that report every successful refresh.
    The Drive client refreshes transparently inside its HTTP transport, so
    this hook is the only place a rotated access token becomes visible.
    """

    def add_refresh_handler(self, handler: Callable[[Credentials], None]):
        if not hasattr(self, "_refresh_handlers"):
            self._refresh_handlers = []
        self._refresh_handlers.append(handler)

    def refresh(self, request):
        super().refresh(request)
        for handler in getattr(self, "_refresh_handlers", []):
            handler(self)


def tokens_from_credentials(creds: Credentials) -> TokenSet:
    """Converts google-auth credentials into the stored token format."""
    # to_json() drops fields that are None, so a refresh without a new
    # refresh token yields a TokenSet whose refresh_token stays unset.
    return TokenSet.model_validate(json.loads(creds.to_json()))


class TokenStore:
    """
    JSON file holding the authorized-user token record.
    Every write merges into the existing record instead of replacing it.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> Optional[TokenSet]:
        if not self.path.is_file():
            return None
        try:
            return TokenSet.model_validate(json.loads(self.path.read_text()))
        except (json.JSONDecodeError, ValidationError) as e:
            logging.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return None

    def merge(self, tokens: TokenSet) -> TokenSet:
        """
        Writes ``tokens`` on top of the stored record and returns the result.
        Fields that are unset in ``tokens`` keep their stored values, which
        preserves the refresh token across access-token rotations.
        """
        with self._lock:
            existing = self.load() or TokenSet()
            merged = existing.model_copy(update=tokens.model_dump(exclude_none=True))
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(merged.model_dump_json(indent=2, exclude_none=True))
            tmp_path.replace(self.path)
            logging.info(f"Tokens saved to {self.path}")
            return merged


class CredentialProvider:
    """
    Owns the OAuth client configuration and the token store, and hands out
    credentials for the storage client. Injected explicitly; there is no
    process-wide token state.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_store: TokenStore,
        scopes: List[str] = SCOPES,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_store = token_store
        self.scopes = list(scopes)
        self._refresh_handlers: List[TokenRefreshHandler] = []

    @classmethod
    def from_settings(cls, settings) -> "CredentialProvider":
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            redirect_uri=settings.OAUTH_REDIRECT_URI,
            token_store=TokenStore(settings.TOKEN_PATH),
        )

    def _client_config(self) -> dict:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _flow(self) -> Flow:
        # The consent URL and the code exchange happen in separate processes,
        # so no PKCE verifier can be carried between them.
        return Flow.from_client_config(
            self._client_config(),
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        """Returns the consent URL that yields an offline (refreshable) grant."""
        url, _state = self._flow().authorization_url(
            access_type="offline", prompt="consent"
        )
        return url

    def exchange_auth_code(self, code: str) -> TokenSet:
        """Exchanges an authorization code for tokens and persists them."""
        flow = self._flow()
        flow.fetch_token(code=code)
        logging.info("Authorization code exchanged for tokens.")
        return self.persist_tokens(tokens_from_credentials(flow.credentials))

    def load_tokens(self) -> Optional[TokenSet]:
        return self.token_store.load()

    def persist_tokens(self, tokens: TokenSet) -> TokenSet:
        return self.token_store.merge(tokens)

    def on_token_refresh(self, handler: TokenRefreshHandler):
        """Registers a callback that receives the merged record after each refresh."""
        self._refresh_handlers.append(handler)

    def _handle_refresh(self, creds: Credentials):
        merged = self.persist_tokens(tokens_from_credentials(creds))
        for handler in self._refresh_handlers:
            handler(merged)

    def load_credentials(self) -> RefreshNotifyingCredentials:
        """
        Builds credentials from the stored tokens.

        Raises:
            AuthenticationRequiredError: If no refresh token has been stored yet.
        """
        tokens = self.load_tokens()
        if tokens is None or not tokens.refresh_token:
            raise AuthenticationRequiredError(
                "No refresh token stored. Run 'drivescope auth-url' and then "
                "'drivescope auth-code <code>' to authorize."
            )

        info = tokens.model_dump(exclude_none=True)
        info.setdefault("client_id", self.client_id)
        info.setdefault("client_secret", self.client_secret)
        info.setdefault("scopes", self.scopes)
        creds = RefreshNotifyingCredentials.from_authorized_user_info(info)
        creds.add_refresh_handler(self._handle_refresh)
        return creds
