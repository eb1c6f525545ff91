"""Exception types raised while loading and preparing a flight plan."""


class ConfigurationError(ValueError):
    """Invalid vehicle, mission or sequence configuration.

    Raised before flight; an authoring mistake is never carried into the
    control loop.
    """
