"""Profile configuration and the currently selected profile."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .stores import FileStore

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'config'
TOOL_FILE_NAME = 'awsst'
SELECTED_KEY = 'selected'
PROFILE_PREFIX = 'profile '


@dataclass
class Profile:
    """Region and output settings of one profile in ~/.aws/config."""

    name: str
    region: Optional[str] = None
    output: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    def to_section(self):
        values = dict(self.extra)
        if self.region is not None:
            values['region'] = self.region
        if self.output is not None:
            values['output'] = self.output
        return values


def section_to_profile_name(section):
    """Strip the 'profile ' prefix used by non-default config sections."""
    if section.startswith(PROFILE_PREFIX):
        return section[len(PROFILE_PREFIX):].strip()
    return section


def profile_name_to_section(name):
    if name == 'default':
        return name
    return f'{PROFILE_PREFIX}{name}'


class ConfigStore(FileStore):
    """Profiles from ~/.aws/config keyed by profile name."""

    file_name = CONFIG_FILE_NAME

    def load(self, sections):
        self.items = {}
        for section, values in sections.items():
            name = section_to_profile_name(section)
            values = dict(values)
            self.items[name] = Profile(
                name=name,
                region=values.pop('region', None),
                output=values.pop('output', None),
                extra=values,
            )

    def to_raw(self):
        return {
            profile_name_to_section(name): profile.to_section()
            for name, profile in self.items.items()
        }

    def names(self):
        """Names of all registered profiles, for the caller to choose from."""
        return list(self.items)

    def exists(self, name):
        return name in self.items

    def get(self, name):
        return self.items.get(name)

    def add(self, item):
        self.items[item.name] = item

    def remove(self, name):
        self.items.pop(name, None)


@dataclass
class Selection:
    """The profile that is currently in use."""

    name: str
    region: Optional[str] = None


class SelectionStore(FileStore):
    """The single 'selected' record kept in ~/.aws/awsst."""

    file_name = TOOL_FILE_NAME
    private = True

    def load(self, sections):
        self.items = {}
        values = sections.get(SELECTED_KEY)
        if values and values.get('name'):
            self.items[SELECTED_KEY] = Selection(
                name=values['name'],
                region=values.get('region'),
            )

    def to_raw(self):
        raw = {}
        for key, item in self.items.items():
            values = {'name': item.name}
            if item.region is not None:
                values['region'] = item.region
            raw[key] = values
        return raw

    def selected(self):
        return self.items.get(SELECTED_KEY)

    def select(self, profile):
        """Replace the selection with the given profile."""
        self.items = {SELECTED_KEY: Selection(name=profile.name, region=profile.region)}

    def add(self, item):
        self.items = {SELECTED_KEY: item}

    def remove(self, name):
        current = self.selected()
        if current is not None and current.name == name:
            self.items = {}


def resolve_profile_name(configs, profile_name=None, chooser=None):
    """
    Decide which profile a command operates on.

    Args:
        configs: ConfigStore with the registered profiles
        profile_name: Name given on the command line, if any
        chooser: Callable(names) returning a chosen name or None on abort

    Returns:
        dict: Result with success status, the chosen name (None when the user
        aborted) and a message on failure
    """
    names = configs.names()

    if not names:
        return {
            'success': False,
            'name': None,
            'message': 'No profile is registered. Run `awsst configure` first.'
        }

    if profile_name is not None:
        if not configs.exists(profile_name):
            return {
                'success': False,
                'name': None,
                'message': f'Profile "{profile_name}" does not exist'
            }
        return {'success': True, 'name': profile_name}

    if len(names) == 1:
        return {'success': True, 'name': names[0]}

    if chooser is None:
        return {
            'success': False,
            'name': None,
            'message': 'Several profiles are registered. Use --profile to pick one.'
        }

    chosen = chooser(names)
    if chosen is None:
        logger.debug('Profile selection aborted')
    return {'success': True, 'name': chosen}
