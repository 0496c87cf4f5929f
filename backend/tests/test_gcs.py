"""Tests for GCS multipart uploads and signed video URLs."""

import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from services.gcs import (
    DEFAULT_BUCKET,
    VIDEO_URL_EXPIRATION_SECONDS,
    abort_multipart_upload,
    complete_multipart_upload,
    generate_signed_url,
    get_bucket_name,
    start_multipart_upload,
    upload_part,
)

KEY = "uploads/6f1c/clip.mp4"
URL = "https://storage.googleapis.com/video-bucket/uploads/6f1c/clip.mp4"


def _google_modules(container_cls: MagicMock | None = None, part_cls: MagicMock | None = None):
    """sys.modules entries for google.cloud.storage and google.resumable_media.requests."""
    transport = MagicMock(name="authorized_session")
    mock_client = MagicMock()
    mock_client._http = transport

    mock_storage = MagicMock()
    mock_storage.Client.return_value = mock_client
    mock_cloud = MagicMock()
    mock_cloud.storage = mock_storage

    mock_requests = MagicMock()
    mock_requests.XMLMPUContainer = container_cls or MagicMock()
    mock_requests.XMLMPUPart = part_cls or MagicMock()
    mock_rm = MagicMock()
    mock_rm.requests = mock_requests

    modules = {
        "google": MagicMock(),
        "google.cloud": mock_cloud,
        "google.cloud.storage": mock_storage,
        "google.resumable_media": mock_rm,
        "google.resumable_media.requests": mock_requests,
    }
    return modules, transport


def test_get_bucket_name_default() -> None:
    with patch.dict("os.environ", {"GCS_BUCKET": ""}, clear=False):
        assert get_bucket_name() == DEFAULT_BUCKET


def test_get_bucket_name_strips_whitespace() -> None:
    with patch.dict("os.environ", {"GCS_BUCKET": "  my-bucket  "}, clear=False):
        assert get_bucket_name() == "my-bucket"


def test_start_multipart_upload_initiates_container() -> None:
    container_cls = MagicMock()
    container_cls.return_value.upload_id = "upload-123"
    modules, transport = _google_modules(container_cls=container_cls)

    with patch.dict(sys.modules, modules), patch.dict("os.environ", {"GCS_XML_API_ENDPOINT": ""}, clear=False):
        upload_id = start_multipart_upload(KEY, content_type="video/mp4", bucket_name="video-bucket")

    assert upload_id == "upload-123"
    container_cls.assert_called_once_with(URL, KEY)
    container_cls.return_value.initiate.assert_called_once_with(transport, "video/mp4")


def test_upload_part_sends_whole_file_and_returns_etag() -> None:
    part_cls = MagicMock()
    part_cls.return_value.etag = '"etag-3"'
    modules, transport = _google_modules(part_cls=part_cls)

    with patch.dict(sys.modules, modules), patch.dict("os.environ", {"GCS_XML_API_ENDPOINT": ""}, clear=False):
        etag = upload_part(KEY, "upload-123", 3, "/tmp/part.bin", 42, bucket_name="video-bucket")

    assert etag == '"etag-3"'
    part_cls.assert_called_once_with(URL, "upload-123", "/tmp/part.bin", 0, 42, 3)
    part_cls.return_value.upload.assert_called_once_with(transport)


def test_complete_registers_parts_in_given_order() -> None:
    container_cls = MagicMock()
    modules, transport = _google_modules(container_cls=container_cls)

    with patch.dict(sys.modules, modules), patch.dict("os.environ", {"GCS_XML_API_ENDPOINT": ""}, clear=False):
        complete_multipart_upload(KEY, "upload-123", [(1, "a"), (2, "b")], bucket_name="video-bucket")

    container_cls.assert_called_once_with(URL, KEY, upload_id="upload-123")
    container = container_cls.return_value
    assert [c.args for c in container.register_part.call_args_list] == [(1, "a"), (2, "b")]
    container.finalize.assert_called_once_with(transport)


def test_abort_cancels_container() -> None:
    container_cls = MagicMock()
    modules, transport = _google_modules(container_cls=container_cls)

    with patch.dict(sys.modules, modules), patch.dict("os.environ", {"GCS_XML_API_ENDPOINT": ""}, clear=False):
        abort_multipart_upload(KEY, "upload-123", bucket_name="video-bucket")

    container_cls.return_value.cancel.assert_called_once_with(transport)


def test_custom_xml_endpoint_is_used() -> None:
    container_cls = MagicMock()
    modules, _ = _google_modules(container_cls=container_cls)

    with (
        patch.dict(sys.modules, modules),
        patch.dict("os.environ", {"GCS_XML_API_ENDPOINT": "http://localhost:4443/"}, clear=False),
    ):
        start_multipart_upload("uploads/x/my clip.mp4", bucket_name="b")

    url = container_cls.call_args[0][0]
    assert url == "http://localhost:4443/b/uploads/x/my%20clip.mp4"


def test_generate_signed_url_builds_correct_parameters() -> None:
    """Mock google.cloud.storage and assert generate_signed_url is called with correct params."""
    mock_blob = MagicMock()
    mock_blob.generate_signed_url.return_value = "https://storage.example.com/signed"

    mock_bucket = MagicMock()
    mock_bucket.blob.return_value = mock_blob

    mock_client = MagicMock()
    mock_client.bucket.return_value = mock_bucket

    mock_storage = MagicMock()
    mock_storage.Client.return_value = mock_client
    mock_cloud = MagicMock()
    mock_cloud.storage = mock_storage

    with (
        patch.dict(
            sys.modules,
            {"google": MagicMock(), "google.cloud": mock_cloud, "google.cloud.storage": mock_storage},
        ),
        patch.dict("os.environ", {"GCS_BUCKET": ""}, clear=False),
    ):
        url = generate_signed_url(KEY, bucket_name="video-bucket", expiration_seconds=3600)

    assert url == "https://storage.example.com/signed"
    mock_client.bucket.assert_called_once_with("video-bucket")
    mock_bucket.blob.assert_called_once_with(KEY)
    call_kw = mock_blob.generate_signed_url.call_args[1]
    assert call_kw["method"] == "GET"
    assert call_kw["version"] == "v4"
    now_utc = datetime.now(timezone.utc)
    assert abs((call_kw["expiration"] - now_utc).total_seconds() - 3600) < 5


def test_generate_signed_url_default_expiration() -> None:
    mock_blob = MagicMock()
    mock_storage = MagicMock()
    mock_storage.Client.return_value.bucket.return_value.blob.return_value = mock_blob
    mock_cloud = MagicMock()
    mock_cloud.storage = mock_storage

    with patch.dict(
        sys.modules,
        {"google": MagicMock(), "google.cloud": mock_cloud, "google.cloud.storage": mock_storage},
    ):
        generate_signed_url(KEY, bucket_name="video-bucket")

    expiration = mock_blob.generate_signed_url.call_args[1]["expiration"]
    now_utc = datetime.now(timezone.utc)
    assert abs((expiration - now_utc).total_seconds() - VIDEO_URL_EXPIRATION_SECONDS) < 5
