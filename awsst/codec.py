"""Reading and writing the ~/.aws files.

The files use a narrow INI-like dialect: ``[name]`` headers followed by
``key = value`` lines. It is not parsed with configparser because values may
contain ``=`` (base64 secrets) and duplicate headers must not be fatal.
"""

import logging
import os
import re
import tempfile
from pathlib import Path

from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r'^\[(.*)\]$')


def parse(raw_text):
    """
    Parse file contents into a mapping of section name to key/value mapping.

    Malformed lines are skipped. Duplicate headers merge their bodies; this is
    a lossy fallback kept for compatibility with hand-edited files.

    Args:
        raw_text: Full text of the file

    Returns:
        dict: section name -> dict of key -> value
    """
    bodies = {}
    current = None

    for lineno, line in enumerate(raw_text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue

        header = HEADER_PATTERN.match(stripped)
        if header:
            current = header.group(1)
            if current in bodies:
                logger.debug('Duplicate section [%s] at line %d, merging', current, lineno)
            bodies.setdefault(current, [])
            continue

        if current is None or '=' not in stripped:
            logger.debug('Skipping malformed line %d', lineno)
            continue

        bodies[current].append(stripped)

    sections = {}
    for name, lines in bodies.items():
        values = {}
        for line in lines:
            # Everything after the first '=' is the value
            key, _, value = line.partition('=')
            key = key.strip()
            if not key:
                continue
            values[key] = value.strip()
        sections[name] = values

    return sections


def serialize(sections):
    """Render sections back to file text, one blank line after each section."""
    lines = []
    for name, values in sections.items():
        lines.append(f'[{name}]')
        for key, value in values.items():
            if value is None:
                continue
            lines.append(f'{key} = {value}')
        lines.append('')
    return '\n'.join(lines) + ('\n' if lines else '')


def aws_dir():
    """Return the ~/.aws directory, raising StoreUnavailable if it is missing."""
    try:
        home = Path.home()
    except RuntimeError as e:
        raise StoreUnavailable(f'Could not determine home directory: {e}') from e

    directory = home / '.aws'
    if not directory.is_dir():
        raise StoreUnavailable(f'Directory {directory} does not exist')
    return directory


def read_sections(file_name):
    """
    Read and parse a file under ~/.aws.

    A missing file is created empty so later writes have a target.
    """
    path = aws_dir() / file_name
    if not path.exists():
        logger.debug('Creating empty %s', path)
        path.touch()

    return parse(path.read_text(encoding='utf-8'))


def write_sections(file_name, sections, private=False):
    """
    Replace a file under ~/.aws with the serialized sections.

    Args:
        file_name: Name of the file inside ~/.aws
        sections: Mapping of section name to key/value mapping
        private: If True, restrict the file to owner read/write
    """
    path = aws_dir() / file_name
    fd, tmp_name = tempfile.mkstemp(prefix=f'.{file_name}.', dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(serialize(sections))
        if private:
            os.chmod(tmp_name, 0o600)
        elif path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.debug('Wrote %d section(s) to %s', len(sections), path)
