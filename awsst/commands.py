"""Profile management commands: configure, update, remove, use, ls and init."""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from tabulate import tabulate

from . import prompt
from .credentials import KEY_SUFFIX, Credential, CredentialStore, is_managed_name
from .profiles import ConfigStore, Profile, SelectionStore, resolve_profile_name
from .refresh import select_profile

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'ap-northeast-1'
DEFAULT_OUTPUT = 'json'


def mask_secret(value):
    if len(value) <= 4:
        return '*' * len(value)
    return '*' * 8 + value[-4:]


@dataclass
class ProfileForm:
    """Values collected by the configure dialog."""

    profile: str = ''
    region: str = ''
    output: str = ''
    access_key: str = ''
    secret_access_key: str = ''
    mfa_serial: Optional[str] = None

    @classmethod
    def from_stores(cls, config, credential):
        return cls(
            profile=config.name,
            region=config.region or '',
            output=config.output or '',
            access_key=credential.access_key_id or '',
            secret_access_key=credential.secret_access_key or '',
            mfa_serial=credential.mfa_serial,
        )

    def rows(self):
        return [
            ['Profile Name', self.profile],
            ['Region', self.region],
            ['Output', self.output],
            ['Access Key ID', self.access_key],
            ['Secret Access Key', mask_secret(self.secret_access_key)],
            ['MFA Device ARN', self.mfa_serial or ''],
        ]


def dialog_for_user(form, ask=prompt.input_prompt, confirm=prompt.confirm_prompt):
    """
    Ask for every profile setting, using ``form`` for defaults.

    The profile name is only asked for new profiles.

    Returns:
        ProfileForm: Confirmed values, or None if the user aborted or declined
    """
    answers = {}
    questions = [
        ('region', 'Region', True, form.region or DEFAULT_REGION, False),
        ('output', 'Output', True, form.output or DEFAULT_OUTPUT, False),
        ('access_key', 'Access Key ID', True, form.access_key or None, False),
        ('secret_access_key', 'Secret Access Key', True, form.secret_access_key or None, True),
        ('mfa_serial', 'MFA Device ARN (Optional)', False, form.mfa_serial, False),
    ]
    if not form.profile:
        questions.insert(0, ('profile', 'Profile Name', True, None, False))

    for attr, message, required, default, secret in questions:
        answer = ask(message, required=required, default=default, secret=secret)
        if answer is None:
            return None
        answers[attr] = answer

    result = replace(form, **answers)
    result.mfa_serial = result.mfa_serial or None

    prompt.info(tabulate(result.rows(), headers=['KEY', 'VALUE'], tablefmt='simple'))
    if not confirm('Is it okay to save the displayed contents?'):
        return None
    return result


def configure_profile(dialog=dialog_for_user, exporter=None):
    """
    Register a new profile from user input.

    Returns:
        dict: Result with success status and message
    """
    configs = ConfigStore.read()
    credentials = CredentialStore.read()

    form = dialog(ProfileForm())
    if form is None:
        return {'success': True, 'message': 'Cancelled.'}

    if is_managed_name(form.profile):
        return {
            'success': False,
            'message': f'Profile names ending in "-{KEY_SUFFIX}" are reserved for awsst'
        }

    if configs.exists(form.profile):
        return {
            'success': False,
            'message': f'Profile "{form.profile}" already exists. Use `awsst update` to change it.'
        }

    config = Profile(name=form.profile, region=form.region, output=form.output)
    configs.add(config)
    credentials.add(Credential.from_configure(
        form.profile,
        form.access_key,
        form.secret_access_key,
        form.mfa_serial,
    ))

    configs.write()
    credentials.write()
    select_profile(config, exporter)

    return {'success': True, 'message': f'✓ Profile "{form.profile}" added'}


def update_profile(profile_name=None, chooser=None, dialog=dialog_for_user):
    """
    Change the settings and long-lived keys of an existing profile.

    Keys are written to the managed entry when one exists, so the session
    credentials in the base entry are left alone.

    Returns:
        dict: Result with success status and message
    """
    configs = ConfigStore.read()
    credentials = CredentialStore.read()

    selection = resolve_profile_name(configs, profile_name, chooser)
    if not selection['success']:
        return selection
    name = selection['name']
    if name is None:
        return {'success': True, 'message': 'Cancelled.'}

    if not credentials.exists(name):
        return {
            'success': False,
            'message': f'Profile "{name}" has no entry in the credentials file'
        }

    config = configs.get(name)
    credential = credentials.resolve_preferring_managed(name)

    form = dialog(ProfileForm.from_stores(config, credential))
    if form is None:
        return {'success': True, 'message': 'Cancelled.'}

    config.region = form.region
    config.output = form.output
    credential.access_key_id = form.access_key
    credential.secret_access_key = form.secret_access_key
    credential.mfa_serial = form.mfa_serial
    logger.debug('Updated [%s]', credential.name)

    configs.write()
    credentials.write()

    return {'success': True, 'message': f'✓ Profile "{name}" updated'}


def remove_profile(profile_name=None, chooser=None):
    """Delete a profile from config and credentials, managed entry included."""
    configs = ConfigStore.read()
    credentials = CredentialStore.read()

    selection = resolve_profile_name(configs, profile_name, chooser)
    if not selection['success']:
        return selection
    name = selection['name']
    if name is None:
        return {'success': True, 'message': 'Cancelled.'}

    selection_store = SelectionStore.read()

    configs.remove(name)
    credentials.remove(name)
    selection_store.remove(name)

    configs.write()
    credentials.write()
    selection_store.write()

    return {'success': True, 'message': f'✓ Profile "{name}" deleted'}


def use_profile(profile_name=None, chooser=None, exporter=None):
    """Make a profile the active one."""
    configs = ConfigStore.read()

    selection = resolve_profile_name(configs, profile_name, chooser)
    if not selection['success']:
        return selection
    name = selection['name']
    if name is None:
        return {'success': True, 'message': 'Cancelled.'}

    select_profile(configs.get(name), exporter)

    return {'success': True, 'message': f'✓ Using profile "{name}"'}


def list_profiles():
    """
    Build the table of base credentials.

    Returns:
        str: Table text, with '*' marking the selected profile
    """
    credentials = CredentialStore.read()
    current = SelectionStore.read().selected()
    current_name = current.name if current else None

    table_data = []
    for credential in credentials.bases:
        table_data.append([
            '*' if credential.name == current_name else '',
            credential.name,
            credential.account or '',
            credential.mfa_serial or '',
            credential.role_arn or '',
            credential.expiration or '',
        ])

    headers = ['', 'NAME', 'ACCOUNT', 'MFA', 'ROLE ARN', 'EXPIRATION']
    return tabulate(table_data, headers=headers, tablefmt='simple')


def initialize(exporter=None):
    """Export the selected profile, for use from a shell startup file."""
    current = SelectionStore.read().selected()
    if current is None:
        return {'success': True, 'message': 'No profile selected yet.'}

    if exporter is not None:
        exporter(current.name)
    return {'success': True, 'message': f'Using profile "{current.name}"'}
