"""
Session Guard - owns the bearer token and gates every navigation.

States: unauthenticated -> authenticated on a successful credential
exchange; authenticated -> expired when the token's expiry passes or the
backend rejects it; expired/unauthenticated -> unauthenticated when the
session is cleared, always alongside a redirect to the login view.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Optional

from ..api.errors import (
    AuthenticationError,
    InvalidTokenError,
    SessionExpiredError,
    ThothError,
    ValidationError,
)
from ..config import Settings
from ..models import (
    AuthState,
    Identity,
    NavigationDecision,
    RedirectReason,
    RedirectToHome,
    RedirectToLogin,
    RegistrationResult,
    TokenData,
    TokenVerdict,
)
from ..models.chat import utc_now
from ..storage.token_store import TOKEN_KEY, TokenStore
from ..utils.auth import decode_access_token
from .navigation import evaluate_navigation, resolve_destination

if TYPE_CHECKING:
    from ..api.client import BackendClient

logger = logging.getLogger(__name__)

PARTIAL_REGISTRATION_MESSAGE = "Registration successful. Please log in with your credentials."


class SessionGuard:
    """
    Authentication gate for one client instance.
    """

    def __init__(
        self,
        backend: "BackendClient",
        token_store: TokenStore,
        config: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._backend = backend
        self._store = token_store
        self._config = config
        self._clock = clock

        self._state = AuthState.UNAUTHENTICATED
        self._token: Optional[str] = None
        self._claims: Optional[TokenData] = None
        self._identity: Optional[Identity] = None
        self._expired_reason: Optional[RedirectReason] = None
        self._last_path: Optional[str] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == AuthState.AUTHENTICATED

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def bearer_token(self) -> Optional[str]:
        """Token to tag outgoing requests with; None unless authenticated."""
        return self._token if self.is_authenticated else None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._claims.expires_at if self._claims else None

    @property
    def last_path(self) -> Optional[str]:
        return self._last_path

    async def restore(self) -> AuthState:
        """Pick up a session persisted by an earlier run or another tab."""
        token = await self._store.load_token()
        if not token:
            return self._state
        try:
            claims = decode_access_token(token)
        except InvalidTokenError:
            logger.warning("Stored token is malformed; clearing it")
            self._state = AuthState.EXPIRED
            await self._clear(RedirectReason.INVALID_TOKEN)
            return self._state
        if claims.is_expired(self._clock()):
            logger.info("Stored token has expired; clearing it")
            self._state = AuthState.EXPIRED
            await self._clear(RedirectReason.EXPIRED)
            return self._state

        identity = await self._store.load_identity()
        self._authenticate(token, claims, identity)
        logger.info(f"Session restored for {self._identity.username}")
        return self._state

    async def evaluate(self, path: str, return_path: Optional[str] = None) -> NavigationDecision:
        """
        Decide whether path may be shown, clearing a stale token on the way.

        Args:
            path: Requested path, optionally with ?redirect=
            return_path: Path carried through the login flow

        Returns:
            NavigationDecision: Allow, RedirectToLogin or RedirectToHome
        """
        token = await self._store.load_token()
        evaluation = evaluate_navigation(
            path, token, self._clock(), self._config, return_path=return_path
        )
        decision = evaluation.decision
        verdict = evaluation.verdict

        if verdict in (TokenVerdict.EXPIRED, TokenVerdict.INVALID):
            reason = (
                RedirectReason.EXPIRED if verdict == TokenVerdict.EXPIRED
                else RedirectReason.INVALID_TOKEN
            )
            logger.info(f"Navigation to {path}: token {verdict.value}, clearing session")
            self._state = AuthState.EXPIRED
            await self._clear(reason)
            # The decision already carries the reason
            self._reset(AuthState.UNAUTHENTICATED)
        elif verdict == TokenVerdict.VALID:
            if not self.is_authenticated or token != self._token:
                identity = await self._store.load_identity()
                self._authenticate(token, evaluation.claims, identity)
        elif self._state == AuthState.EXPIRED:
            # Reactive expiry: the token is already gone, report why once
            if isinstance(decision, RedirectToLogin):
                decision = RedirectToLogin(
                    return_path=decision.return_path, reason=self._expired_reason
                )
                self._reset(AuthState.UNAUTHENTICATED)
        elif self._state == AuthState.AUTHENTICATED:
            logger.info("Token disappeared from storage; session ended")
            self._reset(AuthState.UNAUTHENTICATED)

        if isinstance(decision, RedirectToLogin):
            logger.debug(f"Navigation to {path} redirected to login: {decision}")
        elif isinstance(decision, RedirectToHome):
            self._last_path = decision.target
        else:
            self._last_path = path
        return decision

    async def login(self, username: str, password: str, return_path: Optional[str] = None) -> str:
        """
        Exchange credentials for a session.

        Args:
            username: Username
            password: Password
            return_path: Path to resume after login, honored only if root-relative

        Returns:
            str: Post-login destination

        Raises:
            ValidationError: If a field is empty (no request is made)
            AuthenticationError: If the backend rejects the credentials
        """
        errors = self._validate_credentials(username, password)
        if errors:
            raise ValidationError(errors)

        username = username.strip()
        logger.info(f"Login attempt for user: {username}")
        token = await self._backend.login(username, password)

        try:
            claims = decode_access_token(token.access_token)
        except InvalidTokenError as e:
            logger.error("Backend issued a malformed token")
            raise AuthenticationError("Authentication failed. Please try again.") from e
        if claims.is_expired(self._clock()):
            logger.error("Backend issued an already expired token")
            raise AuthenticationError("Authentication failed. Please try again.")

        identity = Identity(username=claims.username or username, role=claims.role or 1)
        if self._config.fetch_profile_on_login:
            try:
                profile = await self._backend.get_profile(token.access_token)
                identity = profile.to_identity()
            except ThothError as e:
                logger.warning(f"Profile unavailable after login, using minimal identity: {e}")

        # Identity first: other tabs react to the token write
        await self._store.save_identity(identity)
        await self._store.save_token(token.access_token)
        self._authenticate(token.access_token, claims, identity)

        destination = resolve_destination(return_path, self._config)
        logger.info(f"Login successful for {username}, continuing to {destination}")
        return destination

    async def register(
        self,
        username: str,
        password: str,
        confirm_password: Optional[str] = None,
        phone_number: Optional[str] = None,
        role: int = 1,
        return_path: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Create an account and sign in with it.

        A failed sign-in after a successful registration is not an error: the
        account exists, so the result reports logged_in=False instead.

        Raises:
            ValidationError: Empty fields or mismatched password confirmation
            BackendError: Duplicate username or phone number
        """
        errors = self._validate_credentials(username, password)
        if confirm_password is not None and confirm_password != password:
            errors["confirm_password"] = "Passwords do not match"
        if errors:
            raise ValidationError(errors)

        username = username.strip()
        logger.info(f"Starting registration for user: {username}")
        response = await self._backend.register(
            username, password, phone_number=phone_number or None, role=role
        )

        try:
            destination = await self.login(username, password, return_path=return_path)
        except ThothError as e:
            logger.warning(f"Registration succeeded but login failed: {e}")
            return RegistrationResult(
                user_id=response.user_id,
                logged_in=False,
                message=PARTIAL_REGISTRATION_MESSAGE,
            )

        return RegistrationResult(
            user_id=response.user_id,
            logged_in=True,
            destination=destination,
            message=response.message,
        )

    async def logout(self) -> str:
        """Drop the session locally. Always succeeds; returns the login path."""
        logger.info("Logging out user")
        self._reset(AuthState.UNAUTHENTICATED)
        try:
            await self._store.clear()
        except OSError as e:
            logger.error(f"Could not clear persisted session: {e}")
        return self._config.login_path

    async def expire(
        self, reason: RedirectReason = RedirectReason.EXPIRED, token: Optional[str] = None
    ) -> None:
        """
        React to the backend rejecting the token.

        Args:
            reason: Why the session ended
            token: The token the rejected request carried; a rejection of a
                token that has since been replaced is ignored
        """
        if self._state == AuthState.EXPIRED:
            return
        if token is not None and token != self._token:
            logger.info("Ignoring rejection of a superseded token")
            return
        logger.warning(f"Session expired ({reason.value}); clearing token")
        self._state = AuthState.EXPIRED
        await self._clear(reason)

    async def refresh_identity(self) -> Identity:
        """Reload the identity from GET /profile."""
        token = self._require_token()
        try:
            profile = await self._backend.get_profile(token)
        except SessionExpiredError:
            await self.expire()
            raise
        self._identity = profile.to_identity()
        await self._store.save_identity(self._identity)
        return self._identity

    async def delete_account(self) -> str:
        """Delete the signed-in account, then end the session. Returns the login path."""
        token = self._require_token()
        username = self._identity.username if self._identity else ""
        try:
            await self._backend.delete_user(username, token)
        except SessionExpiredError:
            await self.expire()
            raise
        logger.info(f"Account {username} deleted")
        return await self.logout()

    async def on_storage_change(self, key: str) -> Optional[NavigationDecision]:
        """
        Another tab changed the shared session; re-check the current view.

        Returns:
            Optional[NavigationDecision]: Decision for the last admitted path,
            or None when nothing needs re-evaluating
        """
        if key != TOKEN_KEY:
            return None
        logger.debug("Access token changed in another tab, re-evaluating")
        if self._last_path is None:
            # Nothing on screen yet; only bring the state in line
            await self.evaluate(self._config.login_path)
            return None
        return await self.evaluate(self._last_path)

    def _authenticate(
        self, token: str, claims: Optional[TokenData], identity: Optional[Identity]
    ) -> None:
        self._token = token
        self._claims = claims or TokenData()
        self._identity = identity or self._identity_from_claims(self._claims)
        self._expired_reason = None
        self._state = AuthState.AUTHENTICATED

    async def _clear(self, reason: RedirectReason) -> None:
        self._token = None
        self._claims = None
        self._identity = None
        self._expired_reason = reason
        await self._store.clear()
        if self._state != AuthState.EXPIRED:
            self._state = AuthState.UNAUTHENTICATED

    def _reset(self, state: AuthState) -> None:
        self._token = None
        self._claims = None
        self._identity = None
        self._expired_reason = None
        self._state = state

    def _require_token(self) -> str:
        token = self.bearer_token
        if token is None:
            raise SessionExpiredError("Please log in to continue.")
        return token

    @staticmethod
    def _identity_from_claims(claims: TokenData) -> Identity:
        if claims.username:
            return Identity(username=claims.username, role=claims.role or 1)
        return Identity.placeholder()

    @staticmethod
    def _validate_credentials(username: str, password: str) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        if not username or not username.strip():
            errors["username"] = "Username is required"
        if not password:
            errors["password"] = "Password is required"
        return errors
