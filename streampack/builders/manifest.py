"""Target list builder — turns a manifest into an ordered target list.

A manifest is a YAML (or JSON) document listing archive entries in the
order they should appear::

    archive: export
    entries:
      - name: 1001/problem.yaml
        data: {pid: 1001, title: A+B}
      - name: 1001/problem.md
        content: "Add two numbers."
      - name: 1001/testdata/1.in
        url: https://files.example.org/1001/1.in

Each entry has exactly one of ``url`` (fetched remotely), ``content``
(text or bytes stored as-is) or ``data`` (any structure, rendered as YAML).
A bare list of entries is accepted as well.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from streampack.models.targets import (
    ArtifactSourceRef,
    InlineContent,
    RemoteRef,
    Target,
    validate_targets,
)

_SOURCE_KEYS = ("url", "content", "data")


class ManifestError(ValueError):
    """Raised when a manifest cannot be turned into a valid target list."""


class Manifest(BaseModel):
    """A parsed manifest: archive name plus the ordered targets."""

    model_config = ConfigDict(frozen=True)

    archive: str = "export"
    targets: list[Target]


def render_data(value: Any) -> bytes:
    """Render structured entry data as a YAML document."""
    return yaml.safe_dump(value, sort_keys=False, allow_unicode=True).encode("utf-8")


def _source_for(entry: Mapping[str, Any], position: int) -> ArtifactSourceRef:
    present = [key for key in _SOURCE_KEYS if key in entry]
    if len(present) != 1:
        raise ManifestError(
            f"Entry {position} ({entry.get('name', '?')!r}) needs exactly one of "
            f"{', '.join(_SOURCE_KEYS)}; found {present or 'none'}"
        )
    key = present[0]
    if key == "url":
        return RemoteRef(url=str(entry["url"]))
    if key == "data":
        return InlineContent(data=render_data(entry["data"]))
    content = entry["content"]
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not isinstance(content, bytes):
        raise ManifestError(
            f"Entry {position} ({entry.get('name', '?')!r}): content must be text; "
            "use 'data' for structured values"
        )
    return InlineContent(data=content)


def build_targets(entries: Iterable[Mapping[str, Any]]) -> list[Target]:
    """Build an ordered, validated target list from entry mappings.

    Indexes are assigned from the iteration order.

    Raises
    ------
    ManifestError
        If an entry is malformed or the resulting list is invalid.
    """
    targets: list[Target] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ManifestError(f"Entry {position} must be a mapping, got {type(entry).__name__}")
        try:
            targets.append(
                Target(index=position, name=str(entry.get("name", "")), source=_source_for(entry, position))
            )
        except ValidationError as exc:
            raise ManifestError(f"Entry {position} is invalid: {exc}") from exc
    try:
        return validate_targets(targets)
    except ValueError as exc:
        raise ManifestError(str(exc)) from exc


def parse_manifest(text: str) -> Manifest:
    """Parse manifest text (YAML or JSON)."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Manifest is not valid YAML/JSON: {exc}") from exc

    if document is None:
        raise ManifestError("Manifest is empty")
    if isinstance(document, list):
        return Manifest(targets=build_targets(document))
    if not isinstance(document, Mapping) or "entries" not in document:
        raise ManifestError("Manifest must be a list of entries or a mapping with 'entries'")
    entries = document["entries"] or []
    if not isinstance(entries, list):
        raise ManifestError("'entries' must be a list")
    archive = str(document.get("archive") or "export")
    return Manifest(archive=archive, targets=build_targets(entries))


def load_manifest(path: Path | str) -> Manifest:
    """Read and parse the manifest at *path*."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    return parse_manifest(text)
