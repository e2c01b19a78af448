"""Domain-specific errors for rfctl."""


class RfctlError(Exception):
    """Base error for rfctl."""


class ConfigError(RfctlError):
    """Raised when an accessory is configured in a way it cannot operate."""


class ConfigValidationError(ConfigError):
    """Raised when an accessory file does not conform to schema or semantics."""


class ConfigLoadError(RfctlError):
    """Raised when reading accessory configuration fails."""


class AccessoryNotFoundError(RfctlError):
    """Raised when no accessory with the requested name is configured."""


class CharacteristicError(RfctlError):
    """Raised when a characteristic is unknown or not writable for an accessory."""


class TransportError(RfctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the transmitter cannot be reached."""


class TransportSendError(TransportError):
    """Raised when payload sending fails."""
