"""Builders that produce the ordered target list before a run starts."""

from streampack.builders.manifest import (
    Manifest,
    ManifestError,
    build_targets,
    load_manifest,
    parse_manifest,
)

__all__ = ["Manifest", "ManifestError", "build_targets", "load_manifest", "parse_manifest"]
