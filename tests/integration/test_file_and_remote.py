"""Integration tests — remote artifacts over httpx into an on-disk archive."""

from __future__ import annotations

import asyncio
import zipfile

import httpx
import pytest

from streampack import PipelineOptions, SourceFetchError, run_pipeline
from streampack.builders import parse_manifest
from streampack.core.errors import HttpStatusError
from streampack.sinks.local_file import FileSink
from streampack.sources.remote import RemoteSource
from streampack.sources.router import TargetSourceRouter

FILES = {f"/1001/{n}.in": f"{n} {n * 2}\n".encode() * 500 for n in range(1, 6)}

MANIFEST = """
archive: "1001"
entries:
  - name: 1001/problem.yaml
    data: {pid: 1001, title: A+B, limits: {time: 1000, memory: 256}}
  - name: 1001/problem.md
    content: "Read two integers and print their sum."
""" + "".join(
    f"  - name: 1001/testdata/{n}.in\n    url: https://files.example.org/1001/{n}.in\n"
    for n in range(1, 6)
)


def _handler(request: httpx.Request) -> httpx.Response:
    body = FILES.get(request.url.path)
    if body is None:
        return httpx.Response(404)
    return httpx.Response(200, content=body)


def _router() -> TargetSourceRouter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    return TargetSourceRouter(remote=RemoteSource(client, chunk_size=1024))


class TestManifestToFile:
    def test_full_archive_on_disk(self, tmp_path):
        manifest = parse_manifest(MANIFEST)
        out = tmp_path / "1001.zip"
        result = asyncio.run(
            run_pipeline(
                manifest.targets,
                FileSink(out),
                source=_router(),
                options=PipelineOptions(concurrency=2),
            )
        )
        assert result.entries_written == 7
        assert result.bytes_written == out.stat().st_size
        with zipfile.ZipFile(out) as zf:
            assert zf.testzip() is None
            assert zf.namelist() == [t.name for t in manifest.targets]
            assert zf.read("1001/testdata/3.in") == FILES["/1001/3.in"]
            assert b"title: A+B" in zf.read("1001/problem.yaml")
        assert not (tmp_path / ".1001.zip.part").exists()

    def test_missing_artifact_leaves_no_file(self, tmp_path):
        text = MANIFEST + "  - name: 1001/testdata/6.in\n    url: https://files.example.org/1001/6.in\n"
        manifest = parse_manifest(text)
        out = tmp_path / "1001.zip"

        async def scenario():
            with pytest.raises(SourceFetchError) as info:
                await run_pipeline(manifest.targets, FileSink(out), source=_router())
            return info.value

        error = asyncio.run(scenario())
        assert error.target_name == "1001/testdata/6.in"
        assert isinstance(error.cause, HttpStatusError)
        assert error.cause.status_code == 404
        assert not out.exists()
        assert not (tmp_path / ".1001.zip.part").exists()
