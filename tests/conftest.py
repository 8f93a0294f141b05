from pathlib import Path

import pytest

from secret_projector.projection.domains.config_loader import ProjectorSettings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def files_dir():
    """Creds repository fixture holding the JSON, YAML and raw source files."""
    return str(FIXTURES_DIR / "files")


@pytest.fixture
def manifests_dir():
    return str(FIXTURES_DIR / "manifests")


@pytest.fixture
def plugins_dir():
    return FIXTURES_DIR / "plugins"


@pytest.fixture
def key_file():
    """Key file holding {"password": "ell0_OliV3r!"}."""
    return str(FIXTURES_DIR / "files" / "encryption-key.json")


@pytest.fixture
def settings(files_dir, manifests_dir, key_file):
    """Settings pointing at the fixture creds repo and manifests, with fixed labels."""
    return ProjectorSettings(
        creds_repos={"production": files_dir},
        manifests_path=manifests_dir,
        creds_encryption_key_file=key_file,
        generation="6969420",
        label_managed_key="test/managed",
        label_version_key="test/version",
    )
