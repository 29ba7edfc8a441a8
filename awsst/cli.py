"""Command-line interface for awsst."""

import sys
import logging
import argparse

from botocore.exceptions import BotoCoreError, ClientError

from . import __version__, prompt
from .commands import (
    configure_profile,
    initialize,
    list_profiles,
    remove_profile,
    update_profile,
    use_profile,
)
from .exceptions import AwsstError
from .refresh import refresh_session
from .shell import export_profile


def report(result):
    """Print a command result and return the exit code."""
    if result['success']:
        prompt.info(result['message'])
        return 0
    prompt.error(result['message'])
    return 1


def session_command(args):
    result = refresh_session(
        profile_name=args.profile,
        force=args.force,
        chooser=prompt.choose_profile,
        mfa_prompt=prompt.mfa_code_prompt,
        exporter=export_profile,
    )
    if result['status'] == 'not_expired':
        prompt.error(result['message'])
        return 0
    code = report(result)
    if result.get('expiration'):
        prompt.info(f"   Token expiration: {result['expiration']}")
    return code


def add_profile_option(parser, help_text, default=None):
    parser.add_argument('-p', '--profile', metavar='PROFILE', default=default, help=help_text)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='awsst',
        description='Keep AWS session tokens fresh for your profiles',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  awsst configure                 # Register a profile
  awsst -p prod                   # Get a session token for 'prod' if needed
  awsst session -p prod --force   # Always get a new session token
  eval "$(awsst use -p dev)"      # Switch the shell to 'dev'
  awsst ls                        # List profiles
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--debug', action='store_true', help='Show debug logging')
    add_profile_option(parser, 'Name of the profile to get a session token for')
    parser.add_argument('-f', '--force', action='store_true',
                        help='Get a new session token even if the current one is valid')

    subparsers = parser.add_subparsers(dest='command')
    # options repeated on subcommands must not reset values given before them
    keep = argparse.SUPPRESS

    subparsers.add_parser('init', help='Export the selected profile to the shell')

    session = subparsers.add_parser('session', help='Get a session token')
    add_profile_option(session, 'Profile to be used', default=keep)
    session.add_argument('-f', '--force', action='store_true', default=keep,
                         help='Get a new session token even if the current one is valid')

    subparsers.add_parser('configure', help='Register a profile, like `aws configure`')

    use = subparsers.add_parser('use', help='Select the profile to use')
    add_profile_option(use, 'Profile to be used', default=keep)

    update = subparsers.add_parser('update', help='Update profile information')
    add_profile_option(update, 'Profile to be updated', default=keep)

    remove = subparsers.add_parser('remove', help='Remove a profile')
    add_profile_option(remove, 'Profile to be removed', default=keep)

    subparsers.add_parser('ls', help='List profiles from the credentials file')

    return parser


def dispatch(args):
    """Run the selected command and return its exit code."""
    if args.command in (None, 'session'):
        return session_command(args)
    if args.command == 'init':
        return report(initialize(exporter=export_profile))
    if args.command == 'configure':
        return report(configure_profile(exporter=export_profile))
    if args.command == 'use':
        return report(use_profile(args.profile, chooser=prompt.choose_profile,
                                  exporter=export_profile))
    if args.command == 'update':
        return report(update_profile(args.profile, chooser=prompt.choose_profile))
    if args.command == 'remove':
        return report(remove_profile(args.profile, chooser=prompt.choose_profile))
    if args.command == 'ls':
        print(list_profiles())
        return 0
    raise ValueError(f'Unknown command: {args.command}')


def main(argv=None):
    """Main function to parse arguments and route to appropriate command."""
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
            stream=sys.stderr,
        )

    try:
        return dispatch(args)
    except ClientError as e:
        error = e.response['Error']
        prompt.error(f"AWS Error ({error['Code']}): {error['Message']}")
        return 1
    except BotoCoreError as e:
        prompt.error(f'AWS Error: {e}')
        return 1
    except AwsstError as e:
        prompt.error(str(e))
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        prompt.error('Operation cancelled.')
        return 130


if __name__ == '__main__':
    sys.exit(main())
