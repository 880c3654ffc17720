"""Exception hierarchy for awsguard."""


class AwsGuardError(Exception):
    """Base class for all awsguard errors."""


class ConfigurationError(AwsGuardError):
    """Fatal misconfiguration detected at registration or resolution time."""

    def __init__(self, message: str, policy_id: str | None = None):
        self.policy_id = policy_id
        if policy_id:
            message = f"{policy_id}: {message}"
        super().__init__(message)


class RegistrationError(ConfigurationError):
    """A policy could not be registered."""


class ConfigFileError(ConfigurationError):
    """A configuration file could not be read or validated."""
