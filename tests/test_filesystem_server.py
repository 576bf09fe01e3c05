from __future__ import annotations

import json

import pytest

from mcp_toolservers.errors import InternalToolError, InvalidParamsError
from mcp_toolservers.servers.filesystem import FilesystemServer, parse_base_dirs


@pytest.fixture
def workspace(tmp_path):
    base = tmp_path / "allowed"
    base.mkdir()
    (base / "notes.txt").write_text("hello", encoding="utf-8")
    (base / "sub").mkdir()
    (base / "sub" / "deep.txt").write_text("deep", encoding="utf-8")
    outside = tmp_path / "secret.txt"
    outside.write_text("do not read", encoding="utf-8")
    return base, outside


@pytest.fixture
def server(workspace, make_settings):
    base, _ = workspace
    return FilesystemServer(make_settings({"FILESYSTEM_BASE_DIRS": str(base)}))


@pytest.mark.asyncio
async def test_read_file_inside_base(server, workspace):
    base, _ = workspace
    envelope = await server.call_tool("read_file", {"path": str(base / "notes.txt")})
    assert envelope.is_error is False
    assert envelope.text() == "hello"


@pytest.mark.asyncio
async def test_relative_path_resolves_against_base(server):
    envelope = await server.call_tool("read_file", {"path": "sub/deep.txt"})
    assert envelope.text() == "deep"


@pytest.mark.asyncio
async def test_read_outside_base_is_denied(server, workspace, monkeypatch):
    _, outside = workspace
    opened = []
    monkeypatch.setattr("pathlib.Path.read_text", lambda *a, **kw: opened.append(a) or "")

    envelope = await server.call_tool("read_file", {"path": str(outside)})

    assert envelope.is_error is True
    assert isinstance(envelope.error, InvalidParamsError)
    assert "Access denied" in envelope.text()
    assert opened == []


@pytest.mark.asyncio
async def test_dotdot_escape_is_denied(server, workspace):
    base, _ = workspace
    envelope = await server.call_tool("read_file", {"path": str(base / ".." / "secret.txt")})
    assert "Access denied" in envelope.text()


@pytest.mark.asyncio
async def test_prefix_sibling_is_denied(server, workspace, tmp_path):
    sibling = tmp_path / "allowed-other"
    sibling.mkdir()
    (sibling / "x.txt").write_text("x", encoding="utf-8")
    envelope = await server.call_tool("read_file", {"path": str(sibling / "x.txt")})
    assert "Access denied" in envelope.text()


@pytest.mark.asyncio
async def test_missing_file_is_internal_error(server, workspace):
    base, _ = workspace
    envelope = await server.call_tool("read_file", {"path": str(base / "missing.txt")})
    assert isinstance(envelope.error, InternalToolError)
    assert "Error reading file" in envelope.text()


@pytest.mark.asyncio
async def test_write_file_creates_parents(server, workspace):
    base, _ = workspace
    target = base / "new" / "dir" / "out.txt"
    envelope = await server.call_tool("write_file", {"path": str(target), "content": "data"})
    assert envelope.is_error is False
    assert target.read_text(encoding="utf-8") == "data"


@pytest.mark.asyncio
async def test_write_empty_content_creates_empty_file(server, workspace):
    base, _ = workspace
    target = base / "empty.txt"
    envelope = await server.call_tool("write_file", {"path": "empty.txt", "content": ""})
    assert envelope.is_error is False
    assert target.exists()
    assert target.read_text(encoding="utf-8") == ""


@pytest.mark.asyncio
async def test_nul_byte_in_path_is_invalid_params(server):
    envelope = await server.call_tool("read_file", {"path": "bad\x00name.txt"})
    assert envelope.is_error is True
    assert isinstance(envelope.error, InvalidParamsError)
    assert "Invalid path" in envelope.text()


@pytest.mark.asyncio
async def test_blank_path_is_rejected(server):
    envelope = await server.call_tool("write_file", {"path": "  ", "content": "x"})
    assert isinstance(envelope.error, InvalidParamsError)
    assert "Path must not be empty" in envelope.text()

@pytest.mark.asyncio
async def test_list_files(server, workspace):
    base, _ = workspace
    flat = json.loads((await server.call_tool("list_files", {"directory": str(base)})).text())
    assert {entry["name"] for entry in flat} == {"notes.txt", "sub"}

    nested = json.loads(
        (await server.call_tool("list_files", {"directory": str(base), "recursive": True})).text()
    )
    assert "sub/deep.txt" in {entry["path"].replace("\\", "/") for entry in nested}


def test_parse_base_dirs_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert parse_base_dirs("") == [tmp_path.resolve()]
    assert len(parse_base_dirs(f"{tmp_path}, {tmp_path / 'x'}")) == 2
