"""Exceptions raised by the extension lifecycle."""


class ExtensionError(Exception):
    """Base exception for extension-related errors."""

    pass


class ExtensionNotFoundError(ExtensionError):
    """Raised when a plugin or theme id is unknown."""

    def __init__(self, extension_id: str, kind: str = "plugin"):
        self.extension_id = extension_id
        self.kind = kind
        super().__init__(f"{kind.capitalize()} not found: {extension_id}")


class ManifestError(ExtensionError):
    """Raised when a plugin.json/theme.json cannot be read or is invalid."""

    pass


class InvalidArchiveError(ExtensionError):
    """Raised when an uploaded archive is not an installable extension."""

    pass


class MigrationError(ExtensionError):
    """Raised when a plugin migration fails to apply."""

    pass


class ThemeRequirementError(ExtensionError):
    """Raised when a theme needs plugins that are not enabled."""

    pass


class MarketplaceError(ExtensionError):
    """Raised when the marketplace rejects a request."""

    pass


class BackupError(ExtensionError):
    """Raised when a database backup cannot be created, restored or imported."""

    pass
