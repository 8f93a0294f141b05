"""Data sources: references to files in a creds repository that project into secret payloads."""
import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import (
    AmbiguousSelectorError,
    MissingSelectorError,
    RawSourceSelectorError,
    SourceParseError,
    StructuredFormatOnRawSourceError,
    StructuredFormatOnScalarError,
    UnknownSourceError,
    UnstructuredFormatOnMultiFieldError,
)
from .path_extractor import lookup
from .scalars import to_bytes

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Backing format of a data source."""
    UNKNOWN = "unknown"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


class OutputFormat(str, Enum):
    """Encoding of a projected secret payload."""
    RAW = "raw"
    JSON = "json"
    YAML = "yaml"


STRUCTURED_KINDS = (SourceKind.JSON, SourceKind.YAML)

NATIVE_FORMATS = {
    SourceKind.JSON: OutputFormat.JSON,
    SourceKind.YAML: OutputFormat.YAML,
}

YAML_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class CredsYAMLLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted dates and timestamps as plain strings."""


CredsYAMLLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != YAML_TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass(frozen=True)
class DataSource:
    """
    A single reference to external content.

    Attributes:
        kind: Backing format of the referenced file
        path: File path, relative to the creds repository root
        format: Explicit output format; inferred when None
        jsonpath: Single path expression (structured sources)
        jsonpaths: Output label -> path expression (structured sources), stored read-only
    """
    kind: SourceKind
    path: str = ""
    format: Optional[OutputFormat] = None
    jsonpath: Optional[str] = None
    jsonpaths: Optional[Mapping[str, str]] = field(default=None, hash=False)

    def __post_init__(self):
        if self.jsonpaths is not None:
            object.__setattr__(self, "jsonpaths", MappingProxyType(dict(self.jsonpaths)))
        if self.kind == SourceKind.RAW and self.has_selectors:
            raise RawSourceSelectorError(
                f"raw source {self.path} cannot declare jsonpath or jsonpaths"
            )
        if self.kind in STRUCTURED_KINDS:
            if self.jsonpath and self.jsonpaths:
                raise AmbiguousSelectorError(
                    f"{self}: only one of jsonpath or jsonpaths may be defined"
                )
            if not self.jsonpath and not self.jsonpaths:
                raise MissingSelectorError(
                    f"{self}: either jsonpath or jsonpaths needs to be defined"
                )

    def __str__(self) -> str:
        if self.kind == SourceKind.UNKNOWN:
            return "unknown"
        return f"{self.kind.value}:{self.path}"

    @property
    def has_selectors(self) -> bool:
        return bool(self.jsonpath) or bool(self.jsonpaths)

    @property
    def output_format(self) -> OutputFormat:
        return self.resolve_format()

    def resolve_format(self) -> OutputFormat:
        """
        Infer or validate the output format for this source.

        Inference (no explicit format):
            raw source -> raw
            structured source + jsonpath -> raw
            json source + jsonpaths -> json
            yaml source + jsonpaths -> yaml

        Raises:
            UnknownSourceError: If the source references no file
            FormatConflictError: If the explicit format cannot be satisfied
        """
        if self.kind == SourceKind.UNKNOWN:
            raise UnknownSourceError("unable to resolve output format of unknown type data source")

        if self.kind == SourceKind.RAW:
            if self.format not in (None, OutputFormat.RAW):
                raise StructuredFormatOnRawSourceError(
                    f"{self}: output format '{self.format.value}' requested, "
                    f"but only raw format is supported for raw sources"
                )
            return OutputFormat.RAW

        if self.jsonpath:
            if self.format not in (None, OutputFormat.RAW):
                raise StructuredFormatOnScalarError(
                    f"{self}: output format '{self.format.value}' is structured, "
                    f"but a single jsonpath only yields a scalar"
                )
            return OutputFormat.RAW

        if self.format is None:
            return NATIVE_FORMATS[self.kind]
        if self.format == OutputFormat.RAW:
            raise UnstructuredFormatOnMultiFieldError(
                f"{self}: output format 'raw' requested, but multiple fields "
                f"cannot be projected into a raw value"
            )
        return self.format

    def project(self, base_dir: str) -> bytes:
        """
        Resolve the data referenced by this source.

        Args:
            base_dir: Root of the creds repository the path is relative to

        Returns:
            Projected payload bytes

        Raises:
            OSError: If the referenced file cannot be read
            ProjectorError: On parse, extraction, normalization or format errors
        """
        if self.kind == SourceKind.UNKNOWN:
            raise UnknownSourceError("unable to project unknown type data source")

        output_format = self.resolve_format()
        file_path = os.path.join(base_dir, self.path)

        if self.kind == SourceKind.RAW:
            with open(file_path, "rb") as f:
                return f.read()

        document = self._load_document(file_path)

        if self.jsonpath:
            return to_bytes(lookup(document, self.jsonpath))

        extracted: Dict[str, Any] = {}
        for label, path in self.jsonpaths.items():
            value = lookup(document, path)
            # Reject shapes that cannot be flattened, but keep native types for re-encoding
            to_bytes(value)
            extracted[label] = value

        logger.debug(f"Extracted {len(extracted)} fields from {file_path} as {output_format.value}")
        if output_format == OutputFormat.JSON:
            return json.dumps(extracted, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        return yaml.safe_dump(
            extracted, default_flow_style=False, sort_keys=True, allow_unicode=True
        ).encode("utf-8")

    def _load_document(self, file_path: str) -> Any:
        with open(file_path, "rb") as f:
            raw = f.read()
        try:
            if self.kind == SourceKind.JSON:
                return json.loads(raw)
            return yaml.load(raw, Loader=CredsYAMLLoader)
        except (json.JSONDecodeError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise SourceParseError(f"failed to parse {self.kind.value} file {file_path}: {e}") from e
