"""Image uploads to S3 compatible object storage (AWS S3, Cloudflare R2)."""
from __future__ import annotations

import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.datastructures import FileStorage

from .errors import StorageError

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024

_EXTENSIONS = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png", "image/webp": "webp"}


def get_s3_client():
    config = current_app.config
    return boto3.client(
        "s3",
        endpoint_url=config.get("STORAGE_ENDPOINT_URL"),
        aws_access_key_id=config.get("STORAGE_ACCESS_KEY_ID"),
        aws_secret_access_key=config.get("STORAGE_SECRET_ACCESS_KEY"),
        region_name=config.get("STORAGE_REGION"),
    )


def _file_size(file: FileStorage) -> int:
    stream = file.stream
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_image(file: FileStorage | None) -> None:
    if file is None or not file.filename:
        raise StorageError("No image file provided")
    if (file.mimetype or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise StorageError("Invalid file type. Only JPEG, PNG, and WebP are allowed.")
    if _file_size(file) > MAX_IMAGE_BYTES:
        raise StorageError("File too large. Maximum size is 5MB.")


def public_url(key: str) -> str:
    base = current_app.config.get("STORAGE_PUBLIC_URL")
    if base:
        return f"{base.rstrip('/')}/{key}"
    return f"https://{current_app.config['STORAGE_BUCKET']}.s3.amazonaws.com/{key}"


def key_from_url(url: str) -> str | None:
    base = current_app.config.get("STORAGE_PUBLIC_URL")
    prefixes = [f"https://{current_app.config.get('STORAGE_BUCKET')}.s3.amazonaws.com/"]
    if base:
        prefixes.insert(0, f"{base.rstrip('/')}/")
    for prefix in prefixes:
        if url and url.startswith(prefix):
            return url[len(prefix):] or None
    return None


def upload_image(file: FileStorage, folder: str) -> str:
    """Validate and upload one image, returning its public URL."""
    validate_image(file)
    bucket = current_app.config.get("STORAGE_BUCKET")
    if not bucket:
        raise StorageError("Image storage is not configured", status_code=503)

    mimetype = file.mimetype.lower()
    key = f"{folder}/{uuid.uuid4()}.{_EXTENSIONS[mimetype]}"
    file.stream.seek(0)
    try:
        get_s3_client().upload_fileobj(file.stream, bucket, key, ExtraArgs={"ContentType": mimetype})
    except (BotoCoreError, ClientError) as exc:
        current_app.logger.exception("Failed to upload image to storage", exc_info=exc)
        raise StorageError("Failed to upload image", status_code=500) from exc

    current_app.logger.info("Uploaded image %s", key)
    return public_url(key)


def upload_images(files: list[FileStorage], folder: str) -> list[str]:
    """Upload a batch of images. A failed upload removes the ones already stored."""
    for file in files:
        validate_image(file)
    uploaded: list[str] = []
    try:
        for file in files:
            uploaded.append(upload_image(file, folder))
    except StorageError:
        delete_images(uploaded)
        raise
    return uploaded


def delete_image(url: str | None) -> bool:
    """Delete a previously uploaded image. Failures are logged, never raised."""
    key = key_from_url(url or "")
    if key is None:
        return False
    try:
        get_s3_client().delete_object(Bucket=current_app.config["STORAGE_BUCKET"], Key=key)
    except (BotoCoreError, ClientError) as exc:
        current_app.logger.warning("Failed to delete image %s: %s", key, exc)
        return False
    return True


def delete_images(urls) -> None:
    for url in urls or []:
        delete_image(url)
