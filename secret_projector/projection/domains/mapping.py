"""Projection mappings: a namespace's declared secrets joined with a creds repository."""
import json
import logging
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from ...encryption import EncryptionModule, ModuleRegistry, default_registry
from .config_loader import ProjectorSettings
from .errors import EncryptionNotConfiguredError, ManifestError
from .models import EncryptionConfig, ManifestSpec, ProjectedSecret, SecretEntry

logger = logging.getLogger(__name__)

# Data key prefix for decryption keys injected when include_decryption_keys is set
DECRYPTION_KEYS_PREFIX = "keys_"


class ProjectionMapping:
    """
    A manifest declaring which secrets a namespace needs and where they come from.

    The encryption module, if any, is built once at construction and reused
    by every call to project().
    """

    def __init__(self, name: str, namespace: str, repo: str,
                 data: Optional[List[SecretEntry]] = None,
                 encryption: Optional[EncryptionConfig] = None,
                 crypter: Optional[EncryptionModule] = None):
        self.name = name
        self.namespace = namespace
        self.repo = repo
        self.data = list(data or [])
        self.encryption = encryption
        self.crypter = crypter

    def __str__(self) -> str:
        entries = ",".join(str(entry) for entry in self.data)
        return f"{self.namespace}/{self.name}:{self.repo}{{{entries}}}"

    def __repr__(self) -> str:
        return f"ProjectionMapping({self})"

    def project(self, base_dir: str) -> Dict[str, bytes]:
        """
        Project every entry into a keyed byte map.

        Args:
            base_dir: Creds repository root the entries' sources are relative to

        Returns:
            Dict of entry name -> payload, plus keys_<n>.json entries when the
            encryption config includes decryption keys

        Raises:
            EncryptionNotConfiguredError: If an entry asks for encryption but no module is configured
            ProjectorError, OSError: If any entry fails; no partial result is returned
        """
        data: Dict[str, bytes] = {}
        for entry in self.data:
            if entry.encrypt and self.crypter is None:
                raise EncryptionNotConfiguredError(
                    f"encryption of data element '{entry.name}' was requested, but no encryption "
                    f"config was found to instantiate an encryption module"
                )
            value = entry.project(base_dir)
            if entry.encrypt:
                value = self.crypter.encrypt(value)
            data[entry.name] = value

        if self.crypter is not None and self.encryption is not None and self.encryption.include_decryption_keys:
            for i, key in enumerate(self.crypter.decryption_keys(), start=1):
                data[f"{DECRYPTION_KEYS_PREFIX}{i}.json"] = json.dumps(
                    key.to_dict(), separators=(",", ":")
                ).encode("utf-8")
        return data

    def project_secret(self, base_dir: str,
                       settings: Optional[ProjectorSettings] = None) -> ProjectedSecret:
        """Project into an output record carrying identity and, if configured, deploy labels."""
        secret = ProjectedSecret(
            name=self.name,
            namespace=self.namespace,
            data=self.project(base_dir),
        )
        if settings is not None and settings.add_deploy_labels:
            secret.labels = {
                settings.label_version_key: settings.generation,
                settings.label_managed_key: "true",
            }
        return secret


def load_projection_mapping(raw: bytes,
                            settings: Optional[ProjectorSettings] = None,
                            registry: Optional[ModuleRegistry] = None) -> ProjectionMapping:
    """
    Parse a projection mapping from YAML manifest bytes.

    Unknown fields are rejected. If the manifest has an encryption block
    naming a module, missing key file paths are filled from settings and the
    module is constructed.

    Raises:
        ManifestError: If the manifest is not valid YAML or violates the schema
        EncryptionConfigError: If the encryption module cannot be constructed
    """
    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ManifestError(f"failed to parse projection mapping YAML: {e}") from e

    if not isinstance(document, dict):
        raise ManifestError("projection mapping must be a YAML mapping")

    try:
        spec = ManifestSpec.model_validate(document)
    except ValidationError as e:
        raise ManifestError(f"invalid projection mapping: {e}") from e

    entries = [
        SecretEntry(name=entry.name, encrypt=entry.encrypt, source=entry.source.to_datasource())
        for entry in spec.data
    ]

    encryption = spec.encryption
    crypter = None
    if encryption is not None and encryption.module:
        if settings is not None:
            encryption = encryption.with_fallbacks(
                creds_keys_file=settings.creds_encryption_key_file,
                keys_decrypter_file=settings.creds_key_decryption_key_file,
            )
        crypter = (registry or default_registry).create(encryption)

    mapping = ProjectionMapping(
        name=spec.name,
        namespace=spec.namespace,
        repo=spec.repo,
        data=entries,
        encryption=encryption,
        crypter=crypter,
    )
    logger.debug(f"Loaded projection mapping: {mapping}")
    return mapping


def load_projection_mapping_file(path: str,
                                 settings: Optional[ProjectorSettings] = None,
                                 registry: Optional[ModuleRegistry] = None) -> ProjectionMapping:
    """Read and parse a projection mapping manifest file."""
    with open(path, "rb") as f:
        raw = f.read()
    try:
        return load_projection_mapping(raw, settings, registry)
    except ManifestError as e:
        raise type(e)(f"{path}: {e}") from e
