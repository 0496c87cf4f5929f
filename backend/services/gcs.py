"""GCS client: XML API multipart uploads for source videos and signed download URLs."""

import logging
import os
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "prompt-maker-videos"
DEFAULT_XML_API_ENDPOINT = "https://storage.googleapis.com"
VIDEO_URL_EXPIRATION_SECONDS = 12 * 3600  # 12 hours


def get_bucket_name() -> str:
    """Bucket name from env or default."""
    return os.environ.get("GCS_BUCKET", "").strip() or DEFAULT_BUCKET


def get_xml_api_endpoint() -> str:
    return (os.environ.get("GCS_XML_API_ENDPOINT", "").strip() or DEFAULT_XML_API_ENDPOINT).rstrip("/")


def _upload_url(blob_name: str, bucket_name: str) -> str:
    return f"{get_xml_api_endpoint()}/{bucket_name}/{quote(blob_name)}"


def _transport():
    """Authorized requests session of the default storage client (ADC credentials)."""
    from google.cloud import storage

    return storage.Client()._http


def start_multipart_upload(
    blob_name: str,
    *,
    content_type: str = "video/mp4",
    bucket_name: str | None = None,
) -> str:
    """
    Open an XML API multipart upload and return its upload ID.

    :param blob_name: Object path in bucket, e.g. "uploads/<uuid>/clip.mp4"
    :param content_type: Content type stored on the final object
    :param bucket_name: GCS bucket; default from GCS_BUCKET env or "prompt-maker-videos"
    """
    from google.resumable_media.requests import XMLMPUContainer

    bucket_name = bucket_name or get_bucket_name()
    container = XMLMPUContainer(_upload_url(blob_name, bucket_name), blob_name)
    container.initiate(_transport(), content_type)
    logger.info("[gcs] Multipart upload opened: gs://%s/%s", bucket_name, blob_name)
    return container.upload_id


def upload_part(
    blob_name: str,
    upload_id: str,
    part_number: int,
    filename: str,
    size: int,
    *,
    bucket_name: str | None = None,
) -> str:
    """
    Upload bytes [0, size) of a local file as one part and return the part ETag.

    Parts may arrive in any order; GCS only checks them at finalize time.
    """
    from google.resumable_media.requests import XMLMPUPart

    bucket_name = bucket_name or get_bucket_name()
    part = XMLMPUPart(
        _upload_url(blob_name, bucket_name),
        upload_id,
        filename,
        0,
        size,
        part_number,
    )
    part.upload(_transport())
    logger.info("[gcs] Uploaded part %d (%d bytes) of %s", part_number, size, blob_name)
    return part.etag


def complete_multipart_upload(
    blob_name: str,
    upload_id: str,
    parts: list[tuple[int, str]],
    *,
    bucket_name: str | None = None,
) -> None:
    """Stitch the registered (part_number, etag) pairs into the final object."""
    from google.resumable_media.requests import XMLMPUContainer

    bucket_name = bucket_name or get_bucket_name()
    container = XMLMPUContainer(_upload_url(blob_name, bucket_name), blob_name, upload_id=upload_id)
    for part_number, etag in parts:
        container.register_part(part_number, etag)
    container.finalize(_transport())
    logger.info("[gcs] Multipart upload finalized: gs://%s/%s (%d parts)", bucket_name, blob_name, len(parts))


def abort_multipart_upload(
    blob_name: str,
    upload_id: str,
    *,
    bucket_name: str | None = None,
) -> None:
    """Cancel an open multipart upload and discard its parts."""
    from google.resumable_media.requests import XMLMPUContainer

    bucket_name = bucket_name or get_bucket_name()
    container = XMLMPUContainer(_upload_url(blob_name, bucket_name), blob_name, upload_id=upload_id)
    container.cancel(_transport())
    logger.info("[gcs] Multipart upload aborted: gs://%s/%s", bucket_name, blob_name)


def generate_signed_url(
    blob_name: str,
    *,
    bucket_name: str | None = None,
    expiration_seconds: int = VIDEO_URL_EXPIRATION_SECONDS,
) -> str:
    """V4 GET URL for a stored source video (ADC credentials)."""
    from google.cloud import storage

    blob = storage.Client().bucket(bucket_name or get_bucket_name()).blob(blob_name)
    expires = datetime.now(timezone.utc) + timedelta(seconds=expiration_seconds)
    return blob.generate_signed_url(expiration=expires, method="GET", version="v4")
