"""Exception types raised across bundle_patcher."""


class PatchError(Exception):
    """Base class for bundle_patcher errors."""


class BackupError(PatchError):
    """Raised when the pristine backup cannot be created or read."""


class PromptDataError(PatchError):
    """Raised when reference prompt data cannot be fetched or parsed."""


class ConfigError(PatchError):
    """Raised when the config file exists but cannot be used."""
