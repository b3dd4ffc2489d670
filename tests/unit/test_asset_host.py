"""Unit tests for the asset host client and the product image lifecycle."""

from io import BytesIO

import httpx
import pytest
from fastapi import UploadFile
from libs.common.asset_host import AssetHostClient, StoredAsset
from libs.common.exceptions import UpstreamFailure, ValidationFailed
from services.store_service.services.image_ops import (
    delete_images,
    upload_images,
    validate_image_files,
)
from starlette.datastructures import Headers
from tests.conftest import FakeAssetHost


def _client(handler) -> AssetHostClient:
    return AssetHostClient(
        base_url="https://assets.example.com/",
        api_key="key",
        folder="products",
        transport=httpx.MockTransport(handler),
    )


def _upload_file(name: str, content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=BytesIO(b"\x89PNG..."),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


# ---------------------------------------------------------------------------
# AssetHostClient
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upload_returns_stored_asset():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200, json={"url": "https://cdn.example.com/a.png", "storage_id": "products/a"}
        )

    asset = await _client(handler).upload("a.png", b"data", "image/png")

    assert asset == StoredAsset(url="https://cdn.example.com/a.png", storage_id="products/a")
    assert seen["url"] == "https://assets.example.com/assets"
    assert seen["auth"] == "Bearer key"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upload_error_status_is_upstream_failure():
    client = _client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(UpstreamFailure):
        await client.upload("a.png", b"data", "image/png")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upload_malformed_body_is_upstream_failure():
    client = _client(lambda request: httpx.Response(200, json={"url": "x"}))

    with pytest.raises(UpstreamFailure):
        await client.upload("a.png", b"data", "image/png")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_treats_missing_asset_as_deleted():
    client = _client(lambda request: httpx.Response(404))

    await client.delete("products/gone")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_error_status_is_upstream_failure():
    client = _client(lambda request: httpx.Response(503))

    with pytest.raises(UpstreamFailure):
        await client.delete("products/a")


# ---------------------------------------------------------------------------
# image_ops
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_validate_image_files_limits_count():
    files = [_upload_file(f"{i}.png") for i in range(3)]

    validate_image_files(files, max_images=3)
    with pytest.raises(ValidationFailed):
        validate_image_files(files, max_images=2)


@pytest.mark.unit
def test_validate_image_files_rejects_non_images():
    with pytest.raises(ValidationFailed):
        validate_image_files([_upload_file("notes.txt", "text/plain")], max_images=5)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upload_images_keeps_all_on_success():
    host = FakeAssetHost()

    assets = await upload_images(host, [_upload_file("a.png"), _upload_file("b.png")])

    assert len(assets) == 2
    assert set(host.stored) == {asset.storage_id for asset in assets}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upload_images_removes_partial_uploads_on_failure():
    host = FakeAssetHost()
    host.fail_uploads_for = {"bad.png"}

    with pytest.raises(UpstreamFailure):
        await upload_images(
            host, [_upload_file("a.png"), _upload_file("bad.png"), _upload_file("c.png")]
        )

    assert host.stored == {}
    assert len(host.deleted) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_images_counts_failures():
    class FlakyHost(FakeAssetHost):
        async def delete(self, storage_id):
            if storage_id == "products/broken":
                raise UpstreamFailure("Failed to delete images")
            await super().delete(storage_id)

    host = FlakyHost()

    failed = await delete_images(host, ["products/a", "products/broken", "products/b"])

    assert failed == 1
    assert host.deleted == ["products/a", "products/b"]
