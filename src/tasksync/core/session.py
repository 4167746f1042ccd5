# src/tasksync/core/session.py

"""
Current identity + bearer credential.

States: LOADING -> AUTHENTICATED | ANONYMOUS. After start-up only sign_in/sign_out
move between AUTHENTICATED and ANONYMOUS.

The credential lives in exactly two places: the credential store (durable slot)
and the outbound API client (authorization header). Session is the only writer of both.
"""

from __future__ import annotations

import logging

from ..tasks.task_models import Identity, SessionState, UserProfile
from .errors import AuthError, TaskSyncError, ValidationError
from .ports import AuthApi, CredentialSink, CredentialStore

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, auth: AuthApi, store: CredentialStore, sink: CredentialSink) -> None:
        self._auth = auth
        self._store = store
        self._sink = sink
        self._state = SessionState.LOADING
        self._identity: Identity | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED and self._identity is not None

    def require_identity(self) -> Identity:
        if self._identity is None or self._state != SessionState.AUTHENTICATED:
            raise AuthError("You are not signed in.")
        return self._identity

    async def restore(self) -> SessionState:
        """
        Bootstrap from the stored credential with exactly one verification call.

        A rejected credential (AuthError) is discarded. Any other failure keeps it
        for the next start, but the session still ends ANONYMOUS.
        """
        if self._state != SessionState.LOADING:
            return self._state

        identity: Identity | None = None
        try:
            credential = self._store.get()
            if not credential:
                logger.debug("No stored credential; starting signed out.")
            else:
                try:
                    identity = await self._auth.verify(credential)
                except AuthError:
                    logger.info("Stored credential was rejected; discarding it.")
                    self._store.clear()
                except TaskSyncError as e:
                    logger.warning("Could not verify stored credential: %s", e.message)
                else:
                    self._sink.attach_credential(credential)
        finally:
            # Leave LOADING whatever happened above.
            self._set_identity(identity)

        if identity is not None:
            logger.info("Session restored for %s (%s)", identity.email, identity.role.value)
        return self._state

    async def sign_in(self, credential: str) -> Identity:
        """
        Store + attach the credential, then fetch the identity it belongs to.

        On failure the credential stays stored and attached but no identity is set;
        the caller treats it as a failed sign-in (retry or sign_out).
        """
        credential = (credential or "").strip()
        if not credential:
            raise AuthError("Empty credential.")

        self._set_identity(None)
        self._store.set(credential)
        self._sink.attach_credential(credential)

        try:
            identity = await self._auth.verify(credential)
        except AuthError:
            raise
        except TaskSyncError as e:
            raise AuthError(f"Signed in, but your profile could not be loaded: {e.message}") from e

        self._set_identity(identity)
        logger.info("Signed in as %s (%s)", identity.email, identity.role.value)
        return identity

    async def login(self, email: str, password: str) -> Identity:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required.")
        credential = await self._auth.login(email, password)
        return await self.sign_in(credential)

    async def register(self, profile: UserProfile) -> Identity:
        """Create an account. Does not sign in; the new user logs in afterwards."""
        validate_profile(profile)
        identity = await self._auth.register(profile)
        logger.info("Registered %s (%s)", identity.email, identity.role.value)
        return identity

    def sign_out(self) -> None:
        self._store.clear()
        self._sink.detach_credential()
        if self._identity is not None:
            logger.info("Signed out %s", self._identity.email)
        self._set_identity(None)

    def _set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        self._state = SessionState.AUTHENTICATED if identity is not None else SessionState.ANONYMOUS


def validate_profile(profile: UserProfile) -> None:
    if not profile.full_name.strip():
        raise ValidationError("Full name is required.")
    if not profile.email.strip():
        raise ValidationError("Email is required.")
    if not profile.password:
        raise ValidationError("Password is required.")
    if profile.confirm_password is not None and profile.confirm_password != profile.password:
        raise ValidationError("Passwords do not match.")
