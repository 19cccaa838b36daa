"""Tests for CRD and template directory loading."""

from __future__ import annotations

import pytest

from multiclusterhub_operator.constants import REASON_CRD_RENDER, REASON_RESOURCE_RENDER
from multiclusterhub_operator.utils.errors import ConfigurationError, RenderError
from multiclusterhub_operator.utils.manifests import load_crds, load_templates, validate_crd

from .conftest import CRD_YAML, TEMPLATE_YAML


class TestLoadCrds:
    """Test cases for load_crds."""

    def test_loads_sorted_yaml_files(self, tmp_path):
        """Test that .yaml files are parsed in name order and others skipped."""
        (tmp_path / "b.yaml").write_text(CRD_YAML.replace("multiclusterhubs.", "b."))
        (tmp_path / "a.yaml").write_text(CRD_YAML.replace("multiclusterhubs.", "a."))
        (tmp_path / "README.md").write_text("docs")

        crds = load_crds(str(tmp_path))

        assert [crd["metadata"]["name"] for crd in crds] == [
            "a.operator.open-cluster-management.io",
            "b.operator.open-cluster-management.io",
        ]

    def test_one_bad_file_fails_the_batch(self, tmp_path):
        """Test that all errors are collected and nothing is returned."""
        (tmp_path / "a.yaml").write_text(CRD_YAML)
        (tmp_path / "b.yaml").write_text("key: [unclosed")
        (tmp_path / "c.yaml").write_text(TEMPLATE_YAML)

        with pytest.raises(RenderError) as exc_info:
            load_crds(str(tmp_path))

        assert exc_info.value.reason == REASON_CRD_RENDER
        assert len(exc_info.value.errors) == 2
        assert "b.yaml" in exc_info.value.errors[0]
        assert "c.yaml" in exc_info.value.errors[1]

    def test_unconfigured_directory(self):
        """Test that a missing setting is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_crds(None)

        assert exc_info.value.reason == REASON_CRD_RENDER

    def test_unreadable_directory(self, tmp_path):
        """Test that a nonexistent directory is a configuration error."""
        with pytest.raises(ConfigurationError):
            load_crds(str(tmp_path / "missing"))

    def test_validate_crd(self):
        """Test that a CRD needs a group and a kind."""
        assert validate_crd({"kind": "CustomResourceDefinition", "spec": {"group": "g", "names": {"kind": "K"}}})
        assert not validate_crd({"kind": "CustomResourceDefinition", "spec": {"names": {"kind": "K"}}})
        assert not validate_crd({"kind": "ConfigMap", "spec": {"group": "g", "names": {"kind": "K"}}})


class TestLoadTemplates:
    """Test cases for load_templates."""

    def test_reads_kind_base_directory(self, manifest_dirs):
        """Test that templates are read from <dir>/<kind>/base."""
        _, templates = manifest_dirs

        resources = load_templates(templates, "multiclusterhub")

        assert [r["kind"] for r in resources] == ["ClusterRole"]

    def test_non_object_file(self, tmp_path):
        """Test that a file that is not a kubernetes object fails the batch."""
        base = tmp_path / "multiclusterhub" / "base"
        base.mkdir(parents=True)
        (base / "list.yaml").write_text("- a\n- b\n")

        with pytest.raises(RenderError) as exc_info:
            load_templates(str(tmp_path), "multiclusterhub")

        assert exc_info.value.reason == REASON_RESOURCE_RENDER
