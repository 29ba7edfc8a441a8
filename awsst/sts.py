"""Requests to AWS STS for temporary credentials."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import boto3

from .exceptions import MfaCodeRequired

logger = logging.getLogger(__name__)

SESSION_DURATION = 43200
ASSUME_ROLE_DURATION = 3600
ROLE_ARN_PATTERN = re.compile(r'arn:aws:iam::[0-9]*:role/(.*)')


@dataclass
class StsParams:
    """Everything needed to call STS, passed explicitly instead of via os.environ."""

    region: Optional[str]
    access_key_id: Optional[str]
    secret_access_key: Optional[str]
    session_token: Optional[str] = None

    @classmethod
    def for_credential(cls, config, credential):
        return cls(
            region=config.region,
            access_key_id=credential.access_key_id,
            secret_access_key=credential.secret_access_key,
            session_token=credential.session_token,
        )

    def client(self):
        session = boto3.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token,
            region_name=self.region,
        )
        return session.client('sts')


@dataclass
class MfaInfo:
    serial: Optional[str] = None
    code: Optional[str] = None

    def request_args(self):
        if not self.serial:
            return {}
        return {'SerialNumber': self.serial, 'TokenCode': self.code}


def session_name_from_role_arn(role_arn):
    """Use the role name as session name, or the whole string if it is not a role ARN."""
    match = ROLE_ARN_PATTERN.match(role_arn)
    if match:
        return match.group(1)
    return role_arn


def request_session(params, mfa):
    """Call GetSessionToken and return the ``Credentials`` dict."""
    logger.debug('Requesting session token (mfa=%s)', bool(mfa.serial))
    response = params.client().get_session_token(
        DurationSeconds=SESSION_DURATION,
        **mfa.request_args()
    )
    return response['Credentials']


def request_assume_role(params, role_arn, mfa):
    """Call AssumeRole and return the ``Credentials`` dict."""
    session_name = session_name_from_role_arn(role_arn)
    logger.debug('Assuming role %s as session %s', role_arn, session_name)
    response = params.client().assume_role(
        RoleArn=role_arn,
        RoleSessionName=session_name,
        DurationSeconds=ASSUME_ROLE_DURATION,
        **mfa.request_args()
    )
    return response['Credentials']


def resolve_account_identity(params):
    """Return the account id of the identity behind ``params``."""
    identity = params.client().get_caller_identity()
    return identity.get('Account')


def resolve_account_for(config, credential):
    """Account lookup using a freshly rotated credential."""
    return resolve_account_identity(StsParams.for_credential(config, credential))


def get_mfa_info(mfa_serial, mfa_prompt):
    """
    Collect the MFA code for a device, if one is configured.

    Raises:
        MfaCodeRequired: A device is configured but no code was entered
    """
    if not mfa_serial:
        return MfaInfo()

    code = mfa_prompt(mfa_serial) if mfa_prompt else None
    if not code:
        raise MfaCodeRequired(mfa_serial)
    return MfaInfo(serial=mfa_serial, code=code)


def obtain_temporary_credentials(config, credential, mfa_prompt=None):
    """
    Exchange a long-lived credential for temporary credentials.

    Args:
        config: Profile providing the region
        credential: Credential to exchange
        mfa_prompt: Callable(serial) returning the MFA code or None

    Returns:
        dict: ``Credentials`` from the STS response
    """
    mfa = get_mfa_info(credential.mfa_serial, mfa_prompt)
    params = StsParams(
        region=config.region,
        access_key_id=credential.access_key_id,
        secret_access_key=credential.secret_access_key,
    )

    if credential.role_arn:
        return request_assume_role(params, credential.role_arn, mfa)
    return request_session(params, mfa)
