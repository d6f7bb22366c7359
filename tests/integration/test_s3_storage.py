"""
Integration tests for storage backends and CDN invalidation
"""

import io
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from dubcast.services.remote_reconciler import RemoteReconciler, content_headers
from dubcast.storage.cdn import CloudFrontInvalidator, NullInvalidator, create_invalidator
from dubcast.storage.exceptions import (
    StorageBackendError,
    StorageError,
    StorageNotFoundError,
    UploadError,
)
from dubcast.storage.factory import create_storage_backend_with_config
from dubcast.storage.local import LocalStorage
from dubcast.storage.s3 import S3Storage


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    return Mock()


@pytest.fixture
def s3(s3_client):
    return S3Storage("media-bucket", region="ap-northeast-2",
                     public_base_url="https://cdn.example.com/", client=s3_client)


class TestLocalStorage:
    """Test LocalStorage backend"""

    def test_put_get_and_metadata(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.put("a/b/master.m3u8", b"#EXTM3U\n", "application/vnd.apple.mpegurl", "public, max-age=60")

        assert storage.get("a/b/master.m3u8") == b"#EXTM3U\n"
        assert storage.metadata["a/b/master.m3u8"]["cache_control"] == "public, max-age=60"

    def test_missing_key(self, tmp_path):
        storage = LocalStorage(tmp_path)
        assert storage.exists("nope") is False
        with pytest.raises(StorageNotFoundError):
            storage.get("nope")

    def test_key_cannot_escape_root(self, tmp_path):
        storage = LocalStorage(tmp_path / "root")
        with pytest.raises(StorageError):
            storage.get("../outside.txt")

    def test_copy_delete_and_list(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.put("x/one.m4s", b"1", "video/iso.segment")
        storage.copy("x/one.m4s", "y/one.m4s", {"cache_control": "no-cache"})

        assert storage.metadata["y/one.m4s"] == {"content_type": "video/iso.segment", "cache_control": "no-cache"}
        assert storage.list_files("x/") == ["x/one.m4s"]
        assert storage.delete("x/one.m4s") is True
        assert storage.delete("x/one.m4s") is False

    def test_file_url(self, tmp_path):
        assert LocalStorage(tmp_path, "https://cdn.example.com/").get_file_url("/k/master.m3u8") == \
            "https://cdn.example.com/k/master.m3u8"
        assert LocalStorage(tmp_path).get_file_url("k") == str(tmp_path / "k")


class TestS3Storage:
    """Test S3Storage backend with a mocked client"""

    @patch("dubcast.storage.s3.boto3")
    def test_client_created_for_region(self, mock_boto3):
        storage = S3Storage("media-bucket", region="eu-west-1")
        mock_boto3.client.assert_called_once_with("s3", region_name="eu-west-1")
        assert storage.backend_type == "s3"

    def test_put_sends_headers(self, s3, s3_client):
        s3.put("assets/1/audio/ja/a_000.m4s", b"seg", "video/iso.segment",
               "public, max-age=31536000, immutable")
        s3_client.put_object.assert_called_once_with(
            Bucket="media-bucket", Key="assets/1/audio/ja/a_000.m4s", Body=b"seg",
            ContentType="video/iso.segment", CacheControl="public, max-age=31536000, immutable",
        )

    def test_put_failure_is_upload_error(self, s3, s3_client):
        s3_client.put_object.side_effect = _client_error("AccessDenied", "PutObject")
        with pytest.raises(UploadError):
            s3.put("k", b"x")

    def test_upload_file_reads_local_file(self, s3, s3_client, tmp_path):
        local = tmp_path / "init.mp4"
        local.write_bytes(b"init")
        s3.upload_file(local, "assets/1/video/init.mp4", "video/mp4")
        assert s3_client.put_object.call_args.kwargs["Body"] == b"init"

    def test_exists(self, s3, s3_client):
        assert s3.exists("k") is True
        s3_client.head_object.side_effect = _client_error("404")
        assert s3.exists("k") is False

    def test_exists_propagates_permission_errors(self, s3, s3_client):
        s3_client.head_object.side_effect = _client_error("403")
        with pytest.raises(StorageError):
            s3.exists("k")

    def test_network_errors_are_storage_errors(self, s3, s3_client):
        outage = EndpointConnectionError(endpoint_url="https://s3.ap-northeast-2.amazonaws.com")
        s3_client.head_object.side_effect = outage
        s3_client.get_object.side_effect = outage
        s3_client.delete_object.side_effect = outage
        s3_client.get_paginator.side_effect = outage
        with pytest.raises(StorageError):
            s3.exists("k")
        with pytest.raises(StorageError):
            s3.get("k")
        with pytest.raises(StorageError):
            s3.delete("k")
        with pytest.raises(StorageError):
            s3.list_files("assets/")

    def test_copy_network_error_is_upload_error(self, s3, s3_client):
        s3_client.copy_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example")
        with pytest.raises(UploadError):
            s3.copy("a", "b")

    def test_get(self, s3, s3_client):
        s3_client.get_object.return_value = {"Body": io.BytesIO(b"#EXTM3U\n")}
        assert s3.get("s3://media-bucket/assets/1/master.m3u8") == b"#EXTM3U\n"
        s3_client.get_object.assert_called_once_with(Bucket="media-bucket", Key="assets/1/master.m3u8")

    def test_get_missing(self, s3, s3_client):
        s3_client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
        with pytest.raises(StorageNotFoundError):
            s3.get("k")

    def test_foreign_bucket_path(self, s3):
        with pytest.raises(StorageError):
            s3.get("s3://other-bucket/k")

    def test_copy_replaces_metadata(self, s3, s3_client):
        s3.copy("a", "b", {"content_type": "video/mp4", "cache_control": "no-cache"})
        s3_client.copy_object.assert_called_once_with(
            Bucket="media-bucket", Key="b", CopySource={"Bucket": "media-bucket", "Key": "a"},
            MetadataDirective="REPLACE", ContentType="video/mp4", CacheControl="no-cache",
        )

    def test_list_files_pages(self, s3, s3_client):
        paginator = Mock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "p/b"}, {"Key": "p/a"}]},
            {},
        ]
        s3_client.get_paginator.return_value = paginator
        assert s3.list_files("p/") == ["p/a", "p/b"]
        paginator.paginate.assert_called_once_with(Bucket="media-bucket", Prefix="p/")

    def test_file_url(self, s3, s3_client):
        assert s3.get_file_url("assets/1/master.m3u8") == "https://cdn.example.com/assets/1/master.m3u8"
        bare = S3Storage("media-bucket", region="us-east-1", client=s3_client)
        assert bare.get_file_url("k") == "https://media-bucket.s3.us-east-1.amazonaws.com/k"

    def test_reconciler_uploads_bundle_with_headers(self, s3, s3_client, tmp_path):
        (tmp_path / "audio" / "en").mkdir(parents=True)
        (tmp_path / "audio" / "en" / "audio.m3u8").write_text("#EXTM3U\n")
        (tmp_path / "audio" / "en" / "a_000.m4s").write_bytes(b"seg")
        (tmp_path / "master.m3u8").write_text("#EXTM3U\n")

        RemoteReconciler(s3, upload_workers=1).upload_tree(tmp_path, "assets/9")

        calls = s3_client.put_object.call_args_list
        assert calls[-1].kwargs["Key"] == "assets/9/master.m3u8"
        headers = {c.kwargs["Key"]: (c.kwargs["ContentType"], c.kwargs["CacheControl"]) for c in calls}
        assert headers["assets/9/audio/en/a_000.m4s"] == content_headers("a_000.m4s")
        assert headers["assets/9/master.m3u8"] == content_headers("master.m3u8")


class TestFactory:
    def test_local(self, tmp_path):
        storage = create_storage_backend_with_config("local", base_path=str(tmp_path))
        assert storage.backend_type == "local"

    def test_s3_requires_bucket(self):
        with pytest.raises(StorageBackendError):
            create_storage_backend_with_config("s3")

    def test_s3_with_client(self, s3_client):
        storage = create_storage_backend_with_config("s3", bucket="b", client=s3_client)
        assert storage.s3_client is s3_client
        assert storage.region == "us-east-1"

    def test_unknown_backend(self):
        with pytest.raises(StorageBackendError):
            create_storage_backend_with_config("gcs")


class TestCloudFrontInvalidator:
    def test_create_invalidation(self):
        client = Mock()
        client.create_invalidation.return_value = {"Invalidation": {"Id": "I2J3"}}

        assert CloudFrontInvalidator("E123", client=client).invalidate_paths(["/assets/1/master.m3u8"]) == "I2J3"

        kwargs = client.create_invalidation.call_args.kwargs
        assert kwargs["DistributionId"] == "E123"
        assert kwargs["InvalidationBatch"]["Paths"] == {"Quantity": 1, "Items": ["/assets/1/master.m3u8"]}
        assert kwargs["InvalidationBatch"]["CallerReference"].startswith("batch-")

    def test_failure_does_not_fail_reconciler(self, tmp_path):
        client = Mock()
        client.create_invalidation.side_effect = _client_error("AccessDenied", "CreateInvalidation")
        reconciler = RemoteReconciler(LocalStorage(tmp_path), CloudFrontInvalidator("E123", client=client))
        assert reconciler.invalidate("assets/1/master.m3u8") is False

    def test_null_invalidator(self):
        assert NullInvalidator().invalidate_paths(["/x"]) is None

    def test_create_invalidator_from_settings(self):
        with patch("dubcast.settings.get_cdn_provider", return_value="cloudfront"), \
                patch("dubcast.settings.get_cdn_distribution_id", return_value="E9"), \
                patch("dubcast.storage.cdn.boto3"):
            invalidator = create_invalidator()
        assert isinstance(invalidator, CloudFrontInvalidator)
        assert invalidator.distribution_id == "E9"

    def test_unconfigured_distribution(self):
        with patch("dubcast.settings.get_cdn_provider", return_value="cloudfront"), \
                patch("dubcast.settings.get_cdn_distribution_id", return_value=None):
            assert isinstance(create_invalidator(), NullInvalidator)
