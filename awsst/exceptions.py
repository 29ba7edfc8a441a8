"""Exceptions raised by awsst."""


class AwsstError(Exception):
    """Base class for errors that abort an awsst command."""


class StoreUnavailable(AwsstError):
    """The home directory or the ~/.aws directory is missing."""


class MfaCodeRequired(AwsstError):
    """An MFA device is configured but no code was entered."""

    def __init__(self, serial):
        super().__init__(f'No MFA code entered for device "{serial}"')
        self.serial = serial
