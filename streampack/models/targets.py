"""Target models — one logical artifact per archive entry (immutable)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemoteRef(BaseModel):
    """An artifact fetched over HTTP(S) from ``url``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    url: str

    @field_validator("url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Remote artifact URL must be http(s): {value!r}")
        return value


class InlineContent(BaseModel):
    """An artifact generated in memory; ``data`` is the entry body."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    data: bytes = b""


ArtifactSourceRef = Union[RemoteRef, InlineContent]


class Target(BaseModel):
    """One entry of the output archive.

    ``index`` fixes the position in the archive; ``name`` is the entry path.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    name: str = Field(min_length=1)
    source: ArtifactSourceRef = Field(discriminator="kind")

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        name = value.replace("\\", "/").lstrip("/")
        if not name or name.endswith("/"):
            raise ValueError(f"Archive entry name must name a file: {value!r}")
        if any(part == ".." for part in name.split("/")):
            raise ValueError(f"Archive entry name must not traverse upwards: {value!r}")
        return name

    @property
    def is_remote(self) -> bool:
        return isinstance(self.source, RemoteRef)


def validate_targets(targets: Sequence[Target]) -> list[Target]:
    """Check that *targets* forms a valid ordered archive plan.

    Indexes must be contiguous from 0 and match list position, and entry
    names must be unique.  Returns the targets as a new list.

    Raises
    ------
    ValueError
        If the sequence violates any of the above.
    """
    seen: set[str] = set()
    for position, target in enumerate(targets):
        if target.index != position:
            raise ValueError(
                f"Target {target.name!r} has index {target.index}, "
                f"expected {position} (indexes must be contiguous from 0)"
            )
        if target.name in seen:
            raise ValueError(f"Duplicate archive entry name: {target.name!r}")
        seen.add(target.name)
    return list(targets)
