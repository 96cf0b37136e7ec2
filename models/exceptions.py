"""Error kinds raised by the availability engine."""


class SchedulingError(Exception):
    """Base error for slot computation failures."""

    kind = "scheduling_error"


class InvalidConfiguration(SchedulingError):
    """Raised when a request or working-hours window is malformed."""

    kind = "invalid_configuration"


class ProviderError(SchedulingError):
    """Raised when a participant's availability cannot be fetched."""

    kind = "provider_error"


class UnsupportedPolicy(SchedulingError):
    """Raised for an unrecognized scheduling policy."""

    kind = "unsupported_policy"
