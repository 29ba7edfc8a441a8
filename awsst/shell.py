"""Export the active profile to the calling shell.

A process cannot change its parent's environment, so the export statement
is printed on stdout for use as ``eval "$(awsst use)"``.
"""

import os
import shlex
import sys


def export_statement(name, variable='AWS_PROFILE', shell=None):
    """Build the statement that sets ``variable`` in the user's shell."""
    shell = shell if shell is not None else os.environ.get('SHELL', '')
    value = shlex.quote(name)
    if os.path.basename(shell) == 'fish':
        return f'set -gx {variable} {value}'
    return f'export {variable}={value}'


def export_profile(name):
    print(export_statement(name), file=sys.stdout)
