"""Credentials in ~/.aws/credentials and the rotation bookkeeping around them.

Every profile has a base entry (``prod``) that other AWS clients read. Once a
profile has been rotated, awsst also keeps a managed entry (``prod-awsst``)
holding the long-lived credentials used to request the next session.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .stores import FileStore

logger = logging.getLogger(__name__)

CREDENTIAL_FILE_NAME = 'credentials'
KEY_SUFFIX = 'awsst'
EXPIRATION_FORMAT = '%Y-%m-%d %H:%M:%S'
EXPIRATION_MARGIN = timedelta(hours=3)

# attribute -> key in the credentials file
FILE_KEYS = {
    'access_key_id': 'aws_access_key_id',
    'secret_access_key': 'aws_secret_access_key',
    'session_token': 'aws_session_token',
    'security_token': 'aws_security_token',
    'expiration': 'expiration',
    'mfa_serial': 'mfa_serial',
    'role_arn': 'role_arn',
    'account': 'account',
    'source_profile': 'source_profile',
}


def managed_name(name):
    """Name of the managed entry belonging to a base entry."""
    return f'{name}-{KEY_SUFFIX}'


def is_managed_name(name):
    return name.endswith(f'-{KEY_SUFFIX}')


def base_name(name):
    """Strip the managed suffix from a name, if present."""
    if is_managed_name(name):
        return name[:-len(KEY_SUFFIX) - 1]
    return name


def format_expiration(value):
    """
    Render an STS expiration timestamp as local time.

    Args:
        value: datetime returned by STS (timezone aware) or a string

    Returns:
        str: Timestamp in EXPIRATION_FORMAT, or None if value is empty
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime(EXPIRATION_FORMAT)


@dataclass
class Credential:
    """One section of the credentials file."""

    name: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    security_token: Optional[str] = None
    expiration: Optional[str] = None
    mfa_serial: Optional[str] = None
    role_arn: Optional[str] = None
    account: Optional[str] = None
    source_profile: Optional[str] = None
    assumed_role: bool = False
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_section(cls, name, values):
        values = dict(values)
        kwargs = {attr: values.pop(key, None) for attr, key in FILE_KEYS.items()}
        assumed_role = values.pop('assumed_role', None) == 'true'
        return cls(name=name, assumed_role=assumed_role, extra=values, **kwargs)

    @classmethod
    def from_configure(cls, name, access_key_id, secret_access_key, mfa_serial=None):
        """Build a long-lived credential from values entered by the user."""
        return cls(
            name=name,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            mfa_serial=mfa_serial or None,
        )

    def to_section(self):
        """Values to write; unset fields are left out entirely."""
        values = dict(self.extra)
        for attr, key in FILE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                values[key] = value
        if self.assumed_role:
            values['assumed_role'] = 'true'
        return values

    def renamed(self, name):
        clone = copy.deepcopy(self)
        clone.name = name
        return clone

    def time_remaining(self, now=None):
        """Time left until expiration, or None if it is unset or unreadable."""
        if not self.expiration:
            return None
        try:
            expires_at = datetime.strptime(self.expiration, EXPIRATION_FORMAT)
        except ValueError:
            logger.debug('Unreadable expiration %r on [%s]', self.expiration, self.name)
            return None
        return expires_at - (now or datetime.now())

    def is_expired(self, margin=EXPIRATION_MARGIN):
        """
        Check whether the credential should be rotated.

        A credential without an expiration is always treated as expired, as
        is one with less than ``margin`` of validity left.
        """
        remaining = self.time_remaining()
        if remaining is None:
            return True
        return remaining < margin

    def apply_session(self, sts_credentials):
        """Overwrite the transient fields with an STS ``Credentials`` dict."""
        self.access_key_id = sts_credentials.get('AccessKeyId')
        self.secret_access_key = sts_credentials.get('SecretAccessKey')
        self.session_token = sts_credentials.get('SessionToken')
        self.security_token = sts_credentials.get('SessionToken')
        expiration = format_expiration(sts_credentials.get('Expiration'))
        if expiration is not None:
            self.expiration = expiration


class CredentialStore(FileStore):
    """
    Base and managed credentials from ~/.aws/credentials.

    ``bases`` holds entries read by other AWS clients; ``originals`` holds
    the ``-awsst`` entries managed by this tool.
    """

    file_name = CREDENTIAL_FILE_NAME
    private = True

    def load(self, sections):
        self.bases = []
        self.originals = []
        for name, values in sections.items():
            credential = Credential.from_section(name, values)
            if is_managed_name(name):
                self.originals.append(credential)
            else:
                self.bases.append(credential)

        base_names = {c.name for c in self.bases}
        for credential in self.originals:
            if base_name(credential.name) not in base_names:
                logger.warning('Managed credential [%s] has no base entry', credential.name)

    def to_raw(self):
        raw = {}
        for credential in self.bases + self.originals:
            raw[credential.name] = credential.to_section()
        return raw

    def _find(self, collection, name):
        for credential in collection:
            if credential.name == name:
                return credential
        return None

    def get_base(self, name):
        return self._find(self.bases, name)

    def get_managed(self, name):
        return self._find(self.originals, managed_name(name))

    def exists(self, name):
        """True if a base entry exists; a lone managed entry does not count."""
        return self.get_base(name) is not None

    def resolve_for_use(self, name):
        """Return the base entry, raising KeyError if it is missing."""
        credential = self.get_base(name)
        if credential is None:
            raise KeyError(name)
        return credential

    def needs_rotation(self, name, force=False):
        """
        Pick the credential to exchange with STS, if a rotation is due.

        Args:
            name: Base profile name
            force: Rotate even if the current session is still valid

        Returns:
            Credential: The managed entry to exchange (created from the base
            entry on first rotation), or None if no rotation is needed
        """
        current = self.resolve_for_use(name)
        if not force and not current.is_expired():
            return None

        original = self.get_managed(name)
        if original is not None:
            return original

        original = current.renamed(managed_name(name))
        self.originals.append(original)
        logger.debug('Created managed credential [%s]', original.name)
        return original

    def commit_rotation(self, config, matched_name, sts_credentials, resolve_account=None):
        """
        Store the result of an STS exchange in the base entry.

        Args:
            config: Profile the rotation ran for
            matched_name: Name of the credential that was exchanged
            sts_credentials: ``Credentials`` dict returned by STS
            resolve_account: Optional callable(config, credential) returning
                the account id; failures are ignored

        Returns:
            Credential: The updated base entry, or None if none matched
        """
        name = base_name(matched_name)
        current = self.get_base(name)
        if current is None:
            return None

        if self.get_managed(name) is None:
            self.originals.append(current.renamed(managed_name(name)))

        current.apply_session(sts_credentials)

        if resolve_account is not None:
            try:
                account = resolve_account(config, current)
            except (BotoCoreError, ClientError) as e:
                logger.debug('Could not resolve account for [%s]: %s', name, e)
            else:
                if account:
                    current.account = account

        return current

    def resolve_preferring_managed(self, name):
        """Entry whose long-lived secrets should be edited for a profile."""
        return self.get_managed(name) or self.get_base(name)

    def add(self, item):
        for index, credential in enumerate(self.bases):
            if credential.name == item.name:
                self.bases[index] = item
                return
        self.bases.append(item)

    def remove(self, name):
        """Remove a profile's base entry and its managed entry."""
        self.bases = [c for c in self.bases if c.name != name]
        self.originals = [c for c in self.originals if c.name != managed_name(name)]
