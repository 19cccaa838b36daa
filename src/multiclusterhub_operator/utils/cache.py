"""Controller-instance cache shared by the steps of a reconcile pass."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CacheSpec:
    """Values that are expensive to compute and rarely change.

    Overrides and version fields are refreshed at the start of every pass.
    The ingress domain and platform version are discovered once and kept for
    the lifetime of the process unless they are still empty.

    One instance belongs to one reconciler; the work queue never runs two
    passes for the same hub at once, so no locking is needed.
    """

    image_overrides: dict[str, str] = field(default_factory=dict)
    manifest_version: str = ""
    image_repository: str = ""
    image_overrides_cm: str = ""
    ingress_domain: str = ""
    platform_version: str = ""

    def refresh_overrides(
        self,
        image_overrides: dict[str, str],
        manifest_version: str,
        image_repository: str,
        image_overrides_cm: str,
    ) -> None:
        """Replace the per-pass override fields."""
        self.image_overrides = dict(image_overrides)
        self.manifest_version = manifest_version
        self.image_repository = image_repository
        self.image_overrides_cm = image_overrides_cm
