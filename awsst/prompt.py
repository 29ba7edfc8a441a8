"""Interactive terminal prompts.

Messages go to stderr so that stdout stays free for shell export lines.
Every prompt returns None when the user aborts with Ctrl+C or Ctrl+D.
"""

import getpass
import sys


def info(message):
    print(message, file=sys.stderr)


def error(message):
    print(f'❌ {message}', file=sys.stderr)


def _read(message):
    try:
        # input() echoes its prompt on stdout when stdout is captured
        sys.stderr.write(message)
        sys.stderr.flush()
        return input()
    except (EOFError, KeyboardInterrupt):
        # leave the cursor on a fresh line
        print(file=sys.stderr)
        return None


def select_prompt(selections, message='Please select the profile you want to use'):
    """
    Show a numbered list and return the chosen item.

    Args:
        selections: Items to choose from
        message: Prompt shown above the list

    Returns:
        str: Selected item, or None if the user aborted
    """
    info(message)
    for index, item in enumerate(selections, start=1):
        info(f'  {index}) {item}')

    while True:
        answer = _read(f'Select [1-{len(selections)}] (default 1): ')
        if answer is None:
            return None
        answer = answer.strip()
        if not answer:
            return selections[0]
        if answer.isdigit() and 1 <= int(answer) <= len(selections):
            return selections[int(answer) - 1]
        error(f'Enter a number between 1 and {len(selections)}')


def choose_profile(names):
    return select_prompt(names)


def input_prompt(message, required=True, default=None, secret=False):
    """
    Ask for a single value.

    An empty answer keeps ``default``. Required values are asked again until
    something is entered.
    """
    if default:
        suffix = ' [****]' if secret else f' [{default}]'
    else:
        suffix = ''
    while True:
        if secret:
            try:
                answer = getpass.getpass(f'{message}{suffix}: ')
            except (EOFError, KeyboardInterrupt):
                print(file=sys.stderr)
                return None
        else:
            answer = _read(f'{message}{suffix}: ')
            if answer is None:
                return None

        answer = answer.strip() or (default or '')
        if answer or not required:
            return answer
        error(f'{message} is required')


def confirm_prompt(message):
    """Ask a yes/no question; anything but yes counts as no."""
    answer = _read(f'{message} [y/N]: ')
    if answer is None:
        return False
    return answer.strip().lower() in ('y', 'yes')


def mfa_code_prompt(serial):
    """Ask for the current code of an MFA device."""
    answer = _read(f'Enter AWS MFA code for device [{serial}]: ')
    if answer is None:
        return None
    return answer.strip() or None
