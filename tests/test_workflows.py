"""Tests for manifest discovery, projection runs and Secret rendering."""
import base64
import logging
import os
import shutil
import stat

import pytest
import yaml

from secret_projector.projection.domains.config_loader import ConfigError
from secret_projector.projection.domains.errors import ManifestError, ProjectionFailedError
from secret_projector.projection.domains.mapping import load_projection_mapping_file
from secret_projector.projection.domains.models import ProjectedSecret
from secret_projector.projection.workflows.discovery import find_manifests, load_projection_mappings
from secret_projector.projection.workflows.projector import project_mappings, run, write_secrets
from secret_projector.projection.workflows.render import render_secret_yaml, secret_to_manifest


@pytest.fixture
def plain_manifests(tmp_path, manifests_dir):
    """Manifests directory holding only mappings that project cleanly."""
    target = tmp_path / "manifests"
    (target / "nested").mkdir(parents=True)
    shutil.copy(os.path.join(manifests_dir, "json_1.yaml"), target / "json_1.yaml")
    shutil.copy(os.path.join(manifests_dir, "raw_1.yaml"), target / "nested" / "raw_1.yml")
    return target


@pytest.fixture
def plain_settings(settings, plain_manifests):
    settings.manifests_path = str(plain_manifests)
    return settings


class TestDiscovery:
    """Test suite for finding and loading manifests."""

    def test_find_manifests_sorted_and_recursive(self, plain_manifests):
        """Test .yaml and .yml files are found in nested directories, in sorted order."""
        (plain_manifests / "README.md").write_text("not a manifest")

        assert find_manifests(str(plain_manifests)) == [
            str(plain_manifests / "json_1.yaml"),
            str(plain_manifests / "nested" / "raw_1.yml"),
        ]

    def test_find_manifests_missing_dir(self, tmp_path):
        """Test a missing directory yields no manifests."""
        assert find_manifests(str(tmp_path / "missing")) == []

    def test_load_all_fixture_manifests(self, settings):
        """Test every fixture manifest loads, including ones that fail only at projection."""
        mappings = load_projection_mappings(settings)

        assert [m.name for m in mappings] == [
            "test-no-encryption",
            "test-encryption",
            "test1",
            "test2",
            "test-yaml-subset",
            "test-yaml-subset",
        ]

    def test_load_reports_every_failure(self, plain_settings, plain_manifests, caplog):
        """Test all broken manifests are logged before failing."""
        (plain_manifests / "broken_a.yaml").write_text("name: [unterminated\n")
        (plain_manifests / "broken_b.yaml").write_text("name: a\n")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ManifestError) as exc_info:
                load_projection_mappings(plain_settings)

        assert "unable to load 2 projection mappings" in str(exc_info.value)
        assert "broken_a.yaml" in caplog.text
        assert "broken_b.yaml" in caplog.text


class TestProjectMappings:
    """Test suite for project_mappings()."""

    def test_project_all(self, plain_settings):
        """Test each mapping becomes one labelled Secret."""
        mappings = load_projection_mappings(plain_settings)

        secrets = project_mappings(plain_settings, mappings)

        assert [(s.namespace, s.name) for s in secrets] == [("json-tests", "test1"), ("raw-test1", "test2")]
        assert secrets[0].data["single-json-key"] == b"paSsw0rd!"
        assert secrets[1].labels == {"test/version": "6969420", "test/managed": "true"}

    def test_partial_failure(self, settings, manifests_dir, caplog):
        """Test one failing mapping fails the run and is logged."""
        mappings = [
            load_projection_mapping_file(os.path.join(manifests_dir, "raw_1.yaml"), settings),
            load_projection_mapping_file(os.path.join(manifests_dir, "encrypted_no_config.yaml"), settings),
        ]

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ProjectionFailedError) as exc_info:
                project_mappings(settings, mappings)

        assert str(exc_info.value) == "Expected we would create 2 Secrets, but only successfully created 1"
        assert "encryption-tests/test-no-encryption" in caplog.text

    def test_unknown_repo(self, settings, manifests_dir, caplog):
        """Test a mapping naming an unconfigured creds repo fails."""
        settings.creds_repos = {"development": settings.creds_repos["production"]}
        mappings = [load_projection_mapping_file(os.path.join(manifests_dir, "raw_1.yaml"), settings)]

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ProjectionFailedError):
                project_mappings(settings, mappings)

        assert "No creds repo configured for 'production'" in caplog.text


class TestWriteSecrets:
    """Test suite for write_secrets()."""

    def test_writes_read_only_files(self, tmp_path):
        """Test files are named <stamp>-<namespace>-<name>.yaml and owner read-only."""
        secrets = [
            ProjectedSecret(name="test1", namespace="json-tests", data={"a": b"1"}),
            ProjectedSecret(name="test2", namespace="raw-test1", data={"b": b"2"}),
        ]

        paths = write_secrets(str(tmp_path), secrets, stamp=1234)

        assert paths == [
            str(tmp_path / "1234-json-tests-test1.yaml"),
            str(tmp_path / "1234-raw-test1-test2.yaml"),
        ]
        for path in paths:
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o400
        with open(paths[0]) as f:
            assert yaml.safe_load(f)["metadata"]["name"] == "test1"

    def test_missing_output_dir(self, tmp_path):
        """Test a missing output directory is a config error."""
        with pytest.raises(ConfigError) as exc_info:
            write_secrets(str(tmp_path / "missing"), [])

        assert "no such file or directory" in str(exc_info.value)

    def test_output_must_be_directory(self, tmp_path):
        """Test an output path pointing at a file is rejected."""
        target = tmp_path / "file"
        target.write_text("")

        with pytest.raises(ConfigError):
            write_secrets(str(target), [])


class TestRun:
    """Test suite for run()."""

    def test_run_writes_every_secret(self, plain_settings, tmp_path):
        """Test a full run projects and writes each mapping."""
        output = tmp_path / "out"
        output.mkdir()
        plain_settings.output_dir = str(output)

        secrets = run(plain_settings)

        assert len(secrets) == 2
        assert sorted(p.split("-", 1)[1] for p in os.listdir(output)) == [
            "json-tests-test1.yaml",
            "raw-test1-test2.yaml",
        ]

    def test_run_without_output_dir(self, plain_settings):
        """Test projection still happens when nothing is written."""
        assert len(run(plain_settings)) == 2

    def test_nothing_written_on_failure(self, settings, tmp_path):
        """Test no file is written unless every mapping projects."""
        output = tmp_path / "out"
        output.mkdir()
        settings.output_dir = str(output)

        with pytest.raises(ProjectionFailedError):
            run(settings)

        assert os.listdir(output) == []

    def test_no_manifests(self, settings, tmp_path):
        """Test an empty manifests directory fails the run."""
        settings.manifests_path = str(tmp_path)

        with pytest.raises(ProjectionFailedError) as exc_info:
            run(settings)

        assert "No projection mappings loaded" in str(exc_info.value)


class TestRender:
    """Test suite for Secret rendering."""

    def test_secret_manifest(self):
        """Test data is base64 encoded under a v1 Opaque Secret."""
        secret = ProjectedSecret(
            name="test2",
            namespace="raw-test1",
            data={"raw-file": b"hello\n", "another": b"\x00\xff"},
            labels={"test/managed": "true"},
        )

        assert secret_to_manifest(secret) == {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "name": "test2",
                "namespace": "raw-test1",
                "labels": {"test/managed": "true"},
            },
            "type": "Opaque",
            "data": {
                "another": base64.b64encode(b"\x00\xff").decode("ascii"),
                "raw-file": "aGVsbG8K",
            },
        }

    def test_no_labels_key_without_labels(self):
        """Test metadata only carries labels when there are some."""
        manifest = secret_to_manifest(ProjectedSecret(name="a", namespace="b", data={}))

        assert "labels" not in manifest["metadata"]

    def test_render_yaml_round_trips(self):
        """Test the rendered YAML parses back to the manifest."""
        secret = ProjectedSecret(name="a", namespace="b", data={"k": b"v"}, labels={"x": "1"})

        rendered = render_secret_yaml(secret)

        assert yaml.safe_load(rendered) == secret_to_manifest(secret)
        assert rendered.startswith("apiVersion: v1\n")
