"""S3-compatible object store adapter, exercised through botocore's Stubber."""

from unittest.mock import MagicMock

import boto3
import pytest
from botocore.stub import Stubber

from lumendocs.core.config import Settings
from lumendocs.core.exceptions import StorageError
from lumendocs.services.storage_service import S3ObjectStore, build_s3_client

BUCKET = "course-docs"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
    )


@pytest.fixture
def stubbed(s3_client):
    with Stubber(s3_client) as stubber:
        yield S3ObjectStore(s3_client, BUCKET), stubber
        stubber.assert_no_pending_responses()


def test_blob_uri_uses_configured_scheme(s3_client):
    assert S3ObjectStore(s3_client, BUCKET).blob_uri("temp/a.pdf") == "gs://course-docs/temp/a.pdf"
    assert S3ObjectStore(s3_client, BUCKET, "s3").blob_uri("k") == "s3://course-docs/k"


def test_exists(stubbed):
    store, stubber = stubbed
    stubber.add_response("head_object", {"ContentLength": 4}, {"Bucket": BUCKET, "Key": "temp/a.pdf"})
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    assert store.exists("temp/a.pdf") is True
    assert store.exists("temp/missing.pdf") is False


def test_exists_raises_on_other_errors(stubbed):
    store, stubber = stubbed
    stubber.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(StorageError):
        store.exists("temp/a.pdf")


def test_rename_copies_then_deletes(stubbed):
    store, stubber = stubbed
    stubber.add_response("copy_object", {})
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "temp/a.pdf"})

    store.rename("temp/a.pdf", "documents/f1/1001.pdf")


def test_rename_rolls_back_copy_when_source_delete_fails(stubbed):
    store, stubber = stubbed
    stubber.add_response("copy_object", {})
    stubber.add_client_error("delete_object", service_error_code="InternalError", http_status_code=500)
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "documents/f1/1001.pdf"})

    with pytest.raises(StorageError, match="failed to delete original object"):
        store.rename("temp/a.pdf", "documents/f1/1001.pdf")


def test_rename_copy_failure(stubbed):
    store, stubber = stubbed
    stubber.add_client_error("copy_object", service_error_code="NoSuchKey", http_status_code=404)

    with pytest.raises(StorageError, match="during rename"):
        store.rename("temp/a.pdf", "documents/f1/1001.pdf")


def test_delete_wraps_errors(stubbed):
    store, stubber = stubbed
    stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(StorageError):
        store.delete("temp/a.pdf")


def test_signed_url_is_time_limited(s3_client):
    url = S3ObjectStore(s3_client, BUCKET).signed_url("documents/f1/1001.pdf", 1800)

    assert "documents/f1/1001.pdf" in url
    assert "Expires=1800" in url or "X-Amz-Expires=1800" in url


def test_upload_passes_content_type_and_filename():
    client = MagicMock()
    store = S3ObjectStore(client, BUCKET)

    size = store.upload("temp/a.pdf", b"%PDF-1.7", "application/pdf", "Übung.pdf")

    assert size == 8
    args, kwargs = client.upload_fileobj.call_args
    assert args[1:] == (BUCKET, "temp/a.pdf")
    assert kwargs["ExtraArgs"]["ContentType"] == "application/pdf"
    assert kwargs["ExtraArgs"]["Metadata"]["original-filename"] == "bung.pdf"


def test_unconfigured_storage_is_rejected():
    with pytest.raises(StorageError):
        build_s3_client(Settings(STORAGE_ACCESS_KEY_ID="", STORAGE_SECRET_ACCESS_KEY="", STORAGE_BUCKET_NAME=""))
