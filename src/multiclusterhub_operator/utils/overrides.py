"""Sources of image overrides and their layering."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

REASON_MANIFEST = "ImageManifestMissing"
REASON_OVERRIDE_CM = "ImageOverridesConfigmapInvalid"


def _entry_image(entry: dict[str, Any]) -> str:
    remote = entry.get("image-remote", "")
    name = entry.get("image-name", "")
    if entry.get("image-digest"):
        return f"{remote}/{name}@{entry['image-digest']}"
    return f"{remote}/{name}:{entry.get('image-tag', 'latest')}"


def entries_to_overrides(entries: list[dict[str, Any]]) -> dict[str, str]:
    """Turn image manifest entries into a key -> image reference mapping."""
    overrides = {}
    for entry in entries:
        key = entry.get("image-key")
        if key:
            overrides[key] = _entry_image(entry)
    return overrides


def manifest_overrides(manifests_path: str, version: str) -> dict[str, str]:
    """Read the image manifest shipped with this operator version.

    Raises:
        ConfigurationError: If the manifest is missing or malformed
    """
    path = os.path.join(manifests_path, f"{version}.json")
    try:
        with open(path, encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"unable to read image manifest {path}: {e}", REASON_MANIFEST) from e
    return entries_to_overrides(entries)


def override_image_repository(overrides: dict[str, str], repository: str) -> dict[str, str]:
    """Point every image at another registry, keeping name and digest."""
    repository = repository.rstrip("/")
    return {key: f"{repository}/{image.rsplit('/', 1)[-1]}" for key, image in overrides.items()}


def configmap_overrides(configmap: dict[str, Any]) -> dict[str, str]:
    """Parse the overrides carried by a developer override config map.

    Every data value is a JSON list of image manifest entries.

    Raises:
        ConfigurationError: If a value is not valid JSON
    """
    overrides: dict[str, str] = {}
    for key, value in sorted((configmap.get("data") or {}).items()):
        try:
            entries = json.loads(value)
        except ValueError as e:
            raise ConfigurationError(
                f"invalid image overrides in config map key {key}: {e}", REASON_OVERRIDE_CM
            ) from e
        overrides.update(entries_to_overrides(entries))
    return overrides


def layer_overrides(
    env_overrides: dict[str, str],
    manifest_loader: Any,
    repository: str = "",
    configmap_layer: dict[str, str] | None = None,
) -> dict[str, str]:
    """Resolve the effective overrides.

    The environment wins outright when non-empty; otherwise the manifest
    defaults are loaded. The repository prefix and the config map layer are
    applied afterwards, each overwriting keys of the layers before it.

    Args:
        env_overrides: Overrides from OPERAND_IMAGE_* variables
        manifest_loader: Callable returning manifest overrides, only called when needed
        repository: Optional registry replacing every image's registry
        configmap_layer: Optional overrides from the developer config map

    Returns:
        Mapping of image key to image reference
    """
    if env_overrides:
        overrides = dict(env_overrides)
    else:
        logger.info("Image overrides not set from environment variables, reading manifest")
        overrides = manifest_loader()

    if repository:
        logger.info(f"Overriding image repository with {repository}")
        overrides = override_image_repository(overrides, repository)

    if configmap_layer:
        overrides = {**overrides, **configmap_layer}

    return overrides
