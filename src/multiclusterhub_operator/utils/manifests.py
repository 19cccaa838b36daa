"""Loading of bundled CRD and resource template directories."""

from __future__ import annotations

import os
from typing import Any

import yaml

from ..constants import KIND_CRD, REASON_CRD_RENDER, REASON_RESOURCE_RENDER
from .errors import ConfigurationError, RenderError


def list_files(directory: str) -> list[tuple[str, str]]:
    """Return (file name, content) of every .yaml file in a directory, sorted by name.

    Raises:
        OSError: If the directory cannot be read
    """
    files = []
    for file_name in sorted(os.listdir(directory)):
        if os.path.splitext(file_name)[1] != ".yaml":
            continue
        with open(os.path.join(directory, file_name), encoding="utf-8") as f:
            files.append((file_name, f.read()))
    return files


def _parse(file_name: str, content: str, errors: list[str]) -> dict[str, Any] | None:
    try:
        obj = yaml.safe_load(content)
    except yaml.YAMLError as e:
        errors.append(f"error unmarshalling file {file_name}: {e}")
        return None
    if not isinstance(obj, dict) or not obj.get("kind") or not obj.get("apiVersion"):
        errors.append(f"file {file_name} is not a kubernetes object")
        return None
    return obj


def validate_crd(obj: dict[str, Any]) -> bool:
    """Return True if obj is a CRD declaring both a group and a kind."""
    spec = obj.get("spec") or {}
    names = spec.get("names") or {}
    return obj.get("kind") == KIND_CRD and bool(names.get("kind")) and bool(spec.get("group"))


def load_crds(directory: str | None) -> list[dict[str, Any]]:
    """Parse and validate the CRD directory.

    Every file is checked before anything is returned, so a single bad file
    means no CRD of the batch gets applied.

    Raises:
        ConfigurationError: If the directory is not configured or unreadable
        RenderError: If any file fails to parse or is not a CRD
    """
    if not directory:
        raise ConfigurationError("CRDS_PATH environment variable is required", REASON_CRD_RENDER)
    try:
        files = list_files(directory)
    except OSError as e:
        raise ConfigurationError(f"unable to read CRD files from {directory}: {e}", REASON_CRD_RENDER) from e

    crds = []
    errors: list[str] = []
    for file_name, content in files:
        obj = _parse(file_name, content, errors)
        if obj is None:
            continue
        if not validate_crd(obj):
            errors.append(f"error verifying file {file_name} is a crd")
            continue
        crds.append(obj)

    if errors:
        raise RenderError("failed to render CRD templates", errors, REASON_CRD_RENDER)
    return crds


def load_templates(directory: str | None, kind: str) -> list[dict[str, Any]]:
    """Parse the base resource templates under <directory>/<kind>/base.

    Raises:
        ConfigurationError: If the directory is not configured or unreadable
        RenderError: If any file fails to parse
    """
    if not directory:
        raise ConfigurationError("TEMPLATES_PATH environment variable is required", REASON_RESOURCE_RENDER)
    base = os.path.join(directory, kind, "base")
    try:
        files = list_files(base)
    except OSError as e:
        raise ConfigurationError(f"unable to read resource files from {base}: {e}", REASON_RESOURCE_RENDER) from e

    resources = []
    errors: list[str] = []
    for file_name, content in files:
        obj = _parse(file_name, content, errors)
        if obj is not None:
            resources.append(obj)

    if errors:
        raise RenderError("failed to render resources", errors, REASON_RESOURCE_RENDER)
    return resources
