"""Routes each target to the source that understands its reference kind."""

from __future__ import annotations

from streampack.models.targets import Target
from streampack.sources import ArtifactSource, ByteStream
from streampack.sources.inline import InlineSource
from streampack.sources.remote import RemoteSource


class TargetSourceRouter:
    """Default artifact source used by the pipeline.

    Dispatches ``remote`` targets to a ``RemoteSource`` and ``inline``
    targets to an ``InlineSource``.  Either backend can be replaced.
    """

    def __init__(
        self,
        remote: ArtifactSource | None = None,
        inline: ArtifactSource | None = None,
        *,
        timeout: float = 30.0,
        chunk_size: int = 64 * 1024,
        user_agent: str = "streampack/0.1",
    ) -> None:
        self._owned_remote = None
        if remote is None:
            self._owned_remote = RemoteSource(
                timeout=timeout, chunk_size=chunk_size, user_agent=user_agent
            )
            remote = self._owned_remote
        self._routes: dict[str, ArtifactSource] = {
            "remote": remote,
            "inline": inline or InlineSource(chunk_size=chunk_size),
        }

    async def resolve(self, target: Target) -> ByteStream:
        return await self._routes[target.source.kind].resolve(target)

    async def aclose(self) -> None:
        """Release backends created by this router."""
        if self._owned_remote is not None:
            await self._owned_remote.aclose()
