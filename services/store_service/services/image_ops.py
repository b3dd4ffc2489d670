"""Product image lifecycle on the asset host."""

import asyncio
import uuid
from typing import Iterable

from fastapi import UploadFile
from libs.common.asset_host import AssetHostClient, StoredAsset
from libs.common.exceptions import UpstreamFailure, ValidationFailed
from libs.common.logging import get_logger

logger = get_logger(__name__)


def validate_image_files(files: list[UploadFile], max_images: int) -> None:
    if len(files) > max_images:
        raise ValidationFailed(f"At most {max_images} images are allowed")
    for file in files:
        if not (file.content_type or "").startswith("image/"):
            raise ValidationFailed(f"File {file.filename!r} must be an image")


async def _upload_one(asset_host: AssetHostClient, file: UploadFile) -> StoredAsset:
    data = await file.read()
    filename = file.filename or f"upload_{uuid.uuid4().hex}"
    return await asset_host.upload(filename, data, file.content_type or "image/jpeg")


async def upload_images(
    asset_host: AssetHostClient, files: list[UploadFile]
) -> list[StoredAsset]:
    """Upload all files concurrently; all succeed or none are kept.

    When any upload fails, the assets that did upload are deleted before the
    failure is raised.
    """
    if not files:
        return []

    results = await asyncio.gather(
        *(_upload_one(asset_host, file) for file in files), return_exceptions=True
    )
    uploaded = [result for result in results if isinstance(result, StoredAsset)]
    failures = [result for result in results if isinstance(result, BaseException)]

    if failures:
        logger.warning(
            "%d of %d image uploads failed; removing %d uploaded assets",
            len(failures),
            len(files),
            len(uploaded),
        )
        await delete_images(asset_host, (asset.storage_id for asset in uploaded))
        if isinstance(failures[0], UpstreamFailure):
            raise failures[0]
        raise UpstreamFailure("Failed to upload images") from failures[0]

    return uploaded


async def delete_images(asset_host: AssetHostClient, storage_ids: Iterable[str]) -> int:
    """Delete assets concurrently. Failures are logged; returns how many failed."""
    storage_ids = list(storage_ids)
    if not storage_ids:
        return 0

    results = await asyncio.gather(
        *(asset_host.delete(storage_id) for storage_id in storage_ids),
        return_exceptions=True,
    )
    failed = 0
    for storage_id, result in zip(storage_ids, results):
        if isinstance(result, Exception):
            failed += 1
            logger.error("Could not delete asset %s: %s", storage_id, result)
    return failed
