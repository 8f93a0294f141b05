"""Workflow for discovering and loading projection mapping manifests."""
import os
import logging
from typing import List, Optional

from ...encryption import ModuleRegistry
from ..domains.config_loader import ProjectorSettings
from ..domains.errors import ManifestError, ProjectorError
from ..domains.mapping import ProjectionMapping, load_projection_mapping_file

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")


def find_manifests(root: str) -> List[str]:
    """Return manifest file paths under root, recursively, in sorted order."""
    paths = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(MANIFEST_SUFFIXES):
                paths.append(os.path.join(dirpath, filename))
    return paths


def load_projection_mappings(settings: ProjectorSettings,
                             registry: Optional[ModuleRegistry] = None) -> List[ProjectionMapping]:
    """
    Load every projection mapping under settings.manifests_path.

    All manifests are attempted before failing, so every broken manifest is
    reported in one run.

    Raises:
        ManifestError: If any manifest failed to load
    """
    mappings = []
    failures = 0
    for path in find_manifests(settings.manifests_path):
        try:
            mapping = load_projection_mapping_file(path, settings, registry)
        except (ProjectorError, OSError) as e:
            logger.error(f"Error loading projection mapping {path}: {e}")
            failures += 1
            continue
        logger.debug(f"Loaded projection mapping: {mapping}")
        mappings.append(mapping)

    if failures:
        raise ManifestError(f"unable to load {failures} projection mappings")

    logger.info(f"Loaded {len(mappings)} projection mappings")
    return mappings
