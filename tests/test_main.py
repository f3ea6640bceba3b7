"""
pipekit - Application Integration Tests
========================================

What:  End-to-end tests through FastAPI routing and the ASGI writer.
How:   httpx.AsyncClient with ASGITransport, no network.

What we test:
    ✅ Pipeline routes decode, handle and encode real HTTP requests
    ✅ Decode errors render as JSON 400 responses
    ✅ Request ids are echoed back
    ✅ 204 responses have no body
    ✅ /health keeps working next to pipeline routes
"""

from typing import Optional

import httpx
import pytest
import pytest_asyncio
from pydantic import BaseModel

from pipekit import __version__
from pipekit.capabilities import StatusResponse, encode_json_response
from pipekit.decoder import decode_request
from pipekit.exceptions import HTTPError
from pipekit.hooks import echo_request_id, request_id
from pipekit.main import PipelineRoute, create_app
from pipekit.server import new_server, server_after, server_before


class CreateNote(BaseModel):
    title: str
    content: str = ""


class NoteRef(BaseModel):
    id: int
    force: Optional[bool] = None


async def create_note(ctx, req: CreateNote):
    return StatusResponse({"id": 1, "title": req.title}, 201)


async def delete_note(ctx, req: NoteRef):
    if req.id == 404:
        raise HTTPError("note not found", status_code=404, details={"id": req.id})
    return StatusResponse(None, 204)


@pytest_asyncio.fixture
async def client():
    create = new_server(
        create_note,
        decode_request(CreateNote),
        encode_json_response,
        server_before(request_id),
        server_after(echo_request_id),
    )
    delete = new_server(delete_note, decode_request(NoteRef), encode_json_response)
    app = create_app(
        PipelineRoute("/notes", create, methods=("POST",), name="create_note"),
        PipelineRoute("/notes/{id}", delete, methods=("DELETE",), name="delete_note"),
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestPipelineRoutes:
    @pytest.mark.asyncio
    async def test_create(self, client):
        """POST should decode, handle and encode with the handler's status."""
        response = await client.post("/notes", json={"title": "hello"})

        assert response.status_code == 201
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"id": 1, "title": "hello"}

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.post(
            "/notes", json={"title": "x"}, headers={"X-Request-ID": "trace-42"}
        )
        assert response.headers["x-request-id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.post("/notes", json={"title": "x"})
        assert len(response.headers["x-request-id"]) == 8

    @pytest.mark.asyncio
    async def test_decode_error(self, client):
        """Empty body should render as a JSON 400."""
        response = await client.post("/notes", content=b"")

        assert response.status_code == 400
        assert response.json() == {"error": "decode_error", "message": "empty body"}

    @pytest.mark.asyncio
    async def test_validation_error(self, client):
        response = await client.post("/notes", json={"content": "no title"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "can not unmarshal request"
        assert body["details"][0]["loc"] == ["title"]

    @pytest.mark.asyncio
    async def test_no_content(self, client):
        """204 should reach the client with an empty body."""
        response = await client.delete("/notes/7")

        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_handler_error(self, client):
        response = await client.delete("/notes/404")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_router_rejects_unmounted_method(self, client):
        """Methods not mounted on the route are rejected by the router."""
        response = await client.get("/notes")
        assert response.status_code == 405


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        """Health endpoint should report healthy with the package version."""
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert body["uptime_seconds"] >= 0
