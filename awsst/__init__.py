"""awsst - keep AWS session tokens for your profiles up to date."""

__version__ = "1.0.0"

from .credentials import Credential, CredentialStore
from .profiles import ConfigStore, Profile, SelectionStore
from .refresh import refresh_session

__all__ = [
    "Credential",
    "CredentialStore",
    "ConfigStore",
    "Profile",
    "SelectionStore",
    "refresh_session",
]
