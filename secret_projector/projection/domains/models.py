"""Domain models and strict manifest schema for projection mappings."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .datasource import DataSource, OutputFormat, SourceKind
from .errors import ManifestError


class EncryptionConfig(BaseModel):
    """
    How a projection mapping wants its entries encrypted.

    creds_keys_file and keys_decrypter_file are rarely set in a manifest;
    they are back-filled from process settings by with_fallbacks().
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    module: str = ""
    include_decryption_keys: bool = False
    plugin_path: str = Field("", alias="plugin-path")
    params: Dict[str, str] = Field(default_factory=dict)
    creds_keys_file: str = ""
    keys_decrypter_file: str = ""

    def with_fallbacks(self, creds_keys_file: Optional[str] = None,
                       keys_decrypter_file: Optional[str] = None) -> "EncryptionConfig":
        """Return a copy with empty key file paths filled from the given fallbacks."""
        update = {}
        if not self.creds_keys_file and creds_keys_file:
            update["creds_keys_file"] = creds_keys_file
        if not self.keys_decrypter_file and keys_decrypter_file:
            update["keys_decrypter_file"] = keys_decrypter_file
        return self.model_copy(update=update) if update else self


class DataSourceSpec(BaseModel):
    """Manifest schema for a secret entry's source block."""
    model_config = ConfigDict(extra="forbid")

    json_file: Optional[str] = Field(None, alias="json")
    yaml_file: Optional[str] = Field(None, alias="yaml")
    raw_file: Optional[str] = Field(None, alias="raw")
    format: Optional[str] = None
    jsonpath: Optional[str] = None
    jsonpaths: Optional[Dict[str, str]] = None

    def to_datasource(self) -> DataSource:
        """
        Convert the manifest block into a DataSource.

        Raises:
            ManifestError: If more than one file reference is set, or the format is unknown
            SelectorError: If the path selectors are inconsistent with the source kind
        """
        references = [
            (kind, path) for kind, path in (
                (SourceKind.JSON, self.json_file),
                (SourceKind.YAML, self.yaml_file),
                (SourceKind.RAW, self.raw_file),
            ) if path
        ]
        if len(references) > 1:
            names = ", ".join(kind.value for kind, _ in references)
            raise ManifestError(f"source declares multiple file references ({names}); exactly one is allowed")
        kind, path = references[0] if references else (SourceKind.UNKNOWN, "")

        output_format = None
        if self.format:
            try:
                output_format = OutputFormat(self.format)
            except ValueError:
                raise ManifestError(
                    f"unsupported output format '{self.format}' for source {kind.value}:{path}"
                ) from None

        return DataSource(
            kind=kind,
            path=path,
            format=output_format,
            jsonpath=self.jsonpath or None,
            jsonpaths=dict(self.jsonpaths) if self.jsonpaths else None,
        )


class SecretEntrySpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    encrypt: bool = False
    source: DataSourceSpec


class ManifestSpec(BaseModel):
    """Top level manifest schema. Unknown fields are rejected to catch typos early."""
    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: str
    repo: str
    data: List[SecretEntrySpec] = Field(default_factory=list)
    encryption: Optional[EncryptionConfig] = None


@dataclass(frozen=True)
class SecretEntry:
    """A named output field bound to a data source."""
    name: str
    source: DataSource
    encrypt: bool = False

    def __str__(self) -> str:
        return f"{self.name}:{self.source}"

    def project(self, base_dir: str) -> bytes:
        return self.source.project(base_dir)


@dataclass
class ProjectedSecret:
    """Assembled output record handed to renderers."""
    name: str
    namespace: str
    data: Dict[str, bytes]
    labels: Dict[str, str] = field(default_factory=dict)
