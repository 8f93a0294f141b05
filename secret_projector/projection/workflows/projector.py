"""Workflow for projecting loaded mappings into secrets and writing them out."""
import os
import time
import logging
from typing import List, Optional

from ...encryption import ModuleRegistry
from ..domains.config_loader import ConfigError, ProjectorSettings
from ..domains.errors import ProjectionFailedError, ProjectorError
from ..domains.mapping import ProjectionMapping
from ..domains.models import ProjectedSecret
from .discovery import load_projection_mappings
from .render import render_secret_yaml

logger = logging.getLogger(__name__)


def project_mappings(settings: ProjectorSettings,
                     mappings: List[ProjectionMapping]) -> List[ProjectedSecret]:
    """
    Project each mapping against the creds repo its repo tag resolves to.

    Every mapping is attempted so all failures are logged together.

    Raises:
        ProjectionFailedError: If any mapping failed to project
    """
    secrets = []
    for mapping in mappings:
        try:
            creds_path = settings.creds_root_path(mapping.repo)
            logger.debug(f"Projecting mapping {mapping} from {creds_path}")
            secret = mapping.project_secret(creds_path, settings)
        except (ProjectorError, ConfigError, OSError) as e:
            logger.error(f"Unable to project {mapping} into a Secret: {e}")
            continue
        secrets.append(secret)
        if settings.debug and settings.show_secrets:
            logger.debug(f"Generated Secret {secret.namespace}/{secret.name}:\n{render_secret_yaml(secret)}")

    if len(secrets) != len(mappings):
        raise ProjectionFailedError(
            f"Expected we would create {len(mappings)} Secrets, but only successfully created {len(secrets)}"
        )
    logger.info(f"Projected {len(secrets)} Secrets")
    return secrets


def write_secrets(output_dir: str, secrets: List[ProjectedSecret],
                  stamp: Optional[int] = None) -> List[str]:
    """
    Write each secret as <stamp>-<namespace>-<name>.yaml under output_dir.

    Files are created read-only for the owner.

    Returns:
        List of written file paths

    Raises:
        ConfigError: If output_dir doesn't exist or isn't a directory
    """
    if not os.path.exists(output_dir):
        raise ConfigError(f"Unable to open output dir {output_dir}: no such file or directory")
    if not os.path.isdir(output_dir):
        raise ConfigError(f"Output {output_dir} is not a directory")

    if stamp is None:
        stamp = int(time.time())

    written = []
    for secret in secrets:
        filename = os.path.join(output_dir, f"{stamp}-{secret.namespace}-{secret.name}.yaml")
        logger.info(f"Writing {secret.namespace}/{secret.name} Secret to {filename}")
        fd = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o400)
        with os.fdopen(fd, "w") as f:
            f.write(render_secret_yaml(secret))
        written.append(filename)
    return written


def run(settings: ProjectorSettings, registry: Optional[ModuleRegistry] = None) -> List[ProjectedSecret]:
    """
    Load all manifests, project them, and write the results if an output dir is set.

    Nothing is written unless every mapping projected successfully.

    Raises:
        ManifestError: If any manifest failed to load
        ProjectionFailedError: If no manifests were found, or any mapping failed to project
    """
    mappings = load_projection_mappings(settings, registry)
    if not mappings:
        raise ProjectionFailedError(f"No projection mappings loaded from {settings.manifests_path}")

    secrets = project_mappings(settings, mappings)

    if settings.output_dir:
        write_secrets(settings.output_dir, secrets)
    return secrets
