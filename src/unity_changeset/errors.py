from __future__ import annotations


class UnityChangesetError(Exception):
    pass


class NotFoundError(UnityChangesetError, LookupError):
    pass


class ProviderUnavailableError(UnityChangesetError, RuntimeError):
    pass


class InvalidInputError(UnityChangesetError, ValueError):
    pass


class UnsupportedModeError(UnityChangesetError, ValueError):
    pass
