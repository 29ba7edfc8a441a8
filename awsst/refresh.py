"""Session token refresh for a configured profile."""

import logging

from .credentials import CredentialStore
from .profiles import ConfigStore, SelectionStore, resolve_profile_name
from .sts import obtain_temporary_credentials, resolve_account_for

logger = logging.getLogger(__name__)


def select_profile(config, exporter=None):
    """
    Record ``config`` as the active profile and export it.

    Args:
        config: Profile to select
        exporter: Callable(name) that exports the profile to the shell
    """
    selection = SelectionStore.read()
    selection.select(config)
    selection.write()
    logger.debug('Selected profile %s', config.name)

    if exporter is not None:
        exporter(config.name)


def refresh_session(profile_name=None, force=False, chooser=None, mfa_prompt=None,
                    exporter=None, resolve_account=resolve_account_for):
    """
    Fetch a new session token for a profile if the current one is due.

    Nothing is written to disk unless the rotation completes; STS errors
    propagate to the caller unchanged.

    Args:
        profile_name: Profile to refresh; chosen interactively if None
        force: Refresh even if the current session is still valid
        chooser: Callable(names) returning the chosen profile name
        mfa_prompt: Callable(serial) returning the MFA code
        exporter: Callable(name) exporting the selected profile
        resolve_account: Callable(config, credential) returning the account id

    Returns:
        dict: Result with success status, status code and message
    """
    configs = ConfigStore.read()

    selection = resolve_profile_name(configs, profile_name, chooser)
    if not selection['success']:
        return {
            'success': False,
            'status': 'no_selection',
            'message': selection['message']
        }
    name = selection['name']
    if name is None:
        return {
            'success': True,
            'status': 'aborted',
            'message': 'Cancelled.'
        }
    config = configs.get(name)

    credentials = CredentialStore.read()
    if not credentials.exists(name):
        return {
            'success': False,
            'status': 'missing_credential',
            'profile': name,
            'message': f'Profile "{name}" has no entry in the credentials file'
        }

    candidate = credentials.needs_rotation(name, force)
    if candidate is None:
        return {
            'success': True,
            'status': 'not_expired',
            'profile': name,
            'message': 'The credential has more than 3 hours remaining before it expires.\n'
                       'Use --force to refresh it anyway.'
        }

    logger.debug('Exchanging [%s] for profile %s', candidate.name, name)
    sts_credentials = obtain_temporary_credentials(config, candidate, mfa_prompt)

    updated = credentials.commit_rotation(config, candidate.name, sts_credentials, resolve_account)
    if updated is None:
        return {
            'success': False,
            'status': 'commit_mismatch',
            'profile': name,
            'message': f'Failed to update credential for profile "{name}"'
        }

    configs.write()
    credentials.write()
    select_profile(config, exporter)

    return {
        'success': True,
        'status': 'rotated',
        'profile': name,
        'expiration': updated.expiration,
        'message': f'✓ Session token refreshed for profile "{name}"'
    }
