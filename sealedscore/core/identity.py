"""Identity/session providers.

A provider exposes the current identity and whether it is connected, and
tells subscribers when either changes. Ownership computed for a previous
identity is stale from that moment on.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

import bittensor as bt

IdentityListener = Callable[[str | None], None]


@runtime_checkable
class IdentityProvider(Protocol):
    @property
    def identity(self) -> str | None: ...

    @property
    def connected(self) -> bool: ...

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]: ...


class SessionIdentity:
    """Mutable identity holder driven by connect()/disconnect()."""

    def __init__(self, identity: str | None = None):
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def connected(self) -> bool:
        return self._identity is not None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def connect(self, identity: str) -> None:
        if not identity:
            raise ValueError("identity must not be empty")
        self._set(identity)

    def disconnect(self) -> None:
        self._set(None)

    def _set(self, identity: str | None) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        bt.logging.info({"session_identity": {"connected": identity is not None, "identity": identity[:16] if identity else None}})
        for listener in list(self._listeners):
            listener(identity)


def wallet_identity(wallet: Any) -> SessionIdentity:
    """Identity connected as the wallet's hotkey."""
    return SessionIdentity(wallet.hotkey.ss58_address)


__all__ = ["IdentityListener", "IdentityProvider", "SessionIdentity", "wallet_identity"]
