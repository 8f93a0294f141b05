"""Rendering of projected secrets as Kubernetes Secret manifests."""
import base64
from typing import Any, Dict

import yaml

from ..domains.models import ProjectedSecret


def secret_to_manifest(secret: ProjectedSecret) -> Dict[str, Any]:
    """Build the v1/Secret resource for a projected secret, with base64 encoded data."""
    metadata: Dict[str, Any] = {
        "name": secret.name,
        "namespace": secret.namespace,
    }
    if secret.labels:
        metadata["labels"] = dict(secret.labels)
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "type": "Opaque",
        "data": {
            key: base64.b64encode(value).decode("ascii")
            for key, value in sorted(secret.data.items())
        },
    }


def render_secret_yaml(secret: ProjectedSecret) -> str:
    return yaml.safe_dump(secret_to_manifest(secret), default_flow_style=False, sort_keys=True)
