"""Exception hierarchy for manifest loading, projection and encryption."""


class ProjectorError(Exception):
    """Base class for all secret-projector errors."""
    pass


class ProjectionFailedError(ProjectorError):
    """One or more projection mappings could not be projected."""
    pass


# Malformed manifests (load time)

class ManifestError(ProjectorError):
    """Manifest is unparseable or violates the manifest schema."""
    pass


class SelectorError(ManifestError):
    """A data source declares an invalid combination of path selectors."""
    pass


class MissingSelectorError(SelectorError):
    pass


class AmbiguousSelectorError(SelectorError):
    pass


class RawSourceSelectorError(SelectorError):
    pass


# Resolution errors (projection time)

class ResolutionError(ProjectorError):
    """A data source could not be resolved into a value."""
    pass


class UnknownSourceError(ResolutionError):
    pass


class SourceParseError(ResolutionError):
    pass


class InvalidPathError(ResolutionError):
    pass


class PathNotFoundError(ResolutionError):
    pass


class UnsupportedValueError(ResolutionError):
    """An extracted value cannot be flattened into a single byte string."""
    pass


# Output format inference

class FormatConflictError(ProjectorError):
    """The requested output format cannot be satisfied by the data source."""
    pass


class StructuredFormatOnRawSourceError(FormatConflictError):
    pass


class StructuredFormatOnScalarError(FormatConflictError):
    pass


class UnstructuredFormatOnMultiFieldError(FormatConflictError):
    pass


# Encryption

class EncryptionError(ProjectorError):
    pass


class EncryptionNotConfiguredError(EncryptionError):
    pass


class DecryptionError(EncryptionError):
    pass


class EncryptionConfigError(EncryptionError):
    """The encryption block cannot be turned into a working module."""
    pass


class UnsupportedModuleError(EncryptionConfigError):
    pass


class UnsupportedCipherError(EncryptionConfigError):
    pass


class UnsupportedHashError(EncryptionConfigError):
    pass


class MissingPluginPathError(EncryptionConfigError):
    pass


class PluginLoadError(EncryptionConfigError):
    pass
