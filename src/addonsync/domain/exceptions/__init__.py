"""Domain exceptions."""

from typing import Any, Literal

ManifestErrorKind = Literal["NotFound", "Invalid", "Unreachable"]


class AddonSyncError(Exception):
    """Base exception for all AddonSync errors."""

    # Hey future me, message is stored as an attribute so the UI layer can show it
    # without parsing str(exc). Never raise this directly - pick a subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


# =============================================================================
# Manifest errors
# =============================================================================


class ManifestError(AddonSyncError):
    """Base class for manifest fetch failures."""

    kind: ManifestErrorKind = "Unreachable"

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class ManifestNotFoundError(ManifestError):
    """The addon server answered 404 for the manifest. Terminal, never retried."""

    kind: ManifestErrorKind = "NotFound"

    def __init__(self, url: str) -> None:
        super().__init__("Addon manifest not found at this URL", url)


class ManifestInvalidError(ManifestError):
    """The payload decoded but lacks id, name or version. Terminal."""

    kind: ManifestErrorKind = "Invalid"

    def __init__(self, url: str, missing_fields: list[str]) -> None:
        super().__init__(
            "Invalid addon manifest - missing required fields: "
            + ", ".join(missing_fields),
            url,
        )
        self.missing_fields = missing_fields


class ManifestUnreachableError(ManifestError):
    """Transient network/timeout/server failure, raised once retries are exhausted."""

    kind: ManifestErrorKind = "Unreachable"

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.retry_after = retry_after  # seconds, from a 429 Retry-After header


# =============================================================================
# Collection errors
# =============================================================================


class AddonOfflineError(AddonSyncError):
    """Health gate failed, so the manifest fetch was skipped."""

    def __init__(self, transport_url: str, reason: str | None = None) -> None:
        super().__init__("Addon is offline" + (f": {reason}" if reason else ""))
        self.transport_url = transport_url
        self.reason = reason


class ProtectedAddonError(AddonSyncError):
    """Removal of a protected addon was requested. Nothing was changed."""

    def __init__(self, addon_name: str, transport_url: str) -> None:
        super().__init__(f'Addon "{addon_name}" is protected and cannot be removed.')
        self.addon_name = addon_name
        self.transport_url = transport_url


class ReinstallAbortedError(AddonSyncError):
    """The replacement manifest could not be fetched; the collection is untouched."""

    def __init__(self, transport_url: str, reason: str) -> None:
        super().__init__(
            f"Cannot reach addon: {reason}. Aborting reinstall to save existing addon."
        )
        self.transport_url = transport_url
        self.reason = reason


# =============================================================================
# Account provider errors
# =============================================================================


class InvalidCredentialsError(AddonSyncError):
    """Login was rejected (wrong email or password)."""

    def __init__(self, message: str = "Invalid email or password", code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class AuthenticationExpiredError(AddonSyncError):
    """The auth key was rejected by the collection store - re-login required."""

    def __init__(self, message: str = "Invalid or expired auth key") -> None:
        super().__init__(message)


class NetworkError(AddonSyncError):
    """Transport failure talking to the account provider."""

    pass


class ProviderResponseError(AddonSyncError):
    """The account provider answered with an error payload or an unexpected status."""

    pass


__all__ = [
    "AddonOfflineError",
    "AddonSyncError",
    "AuthenticationExpiredError",
    "InvalidCredentialsError",
    "ManifestError",
    "ManifestErrorKind",
    "ManifestInvalidError",
    "ManifestNotFoundError",
    "ManifestUnreachableError",
    "NetworkError",
    "ProtectedAddonError",
    "ProviderResponseError",
    "ReinstallAbortedError",
]
