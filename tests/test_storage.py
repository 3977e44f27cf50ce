"""
Test: S3 storage against a stubbed boto3 client.
"""
import boto3
import pytest
from botocore.stub import ANY, Stubber

from errors import StorageError
from schemas.pipeline import StoredFileHandle
from utils.storage import S3Storage

BUCKET = "grader-files"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def s3_storage(s3_client):
    return S3Storage(client=s3_client, bucket=BUCKET, region="us-east-1")


class TestUpload:
    def test_non_ascii_filename_stored_with_encoded_metadata(self, s3_client, s3_storage):
        with Stubber(s3_client) as stubber:
            stubber.add_response("put_object", {}, {
                "Bucket": BUCKET,
                "Key": ANY,
                "Body": b"essay text",
                "ContentType": "application/pdf",
                "Metadata": {"original_filename": "R%C3%A9sum%C3%A9_Jos%C3%A9.pdf"},
            })
            handle = s3_storage.upload(b"essay text", "Résumé_José.pdf", "submissions/abc")
            stubber.assert_no_pending_responses()

        assert handle.public_id.startswith("submissions/abc/")
        assert handle.public_id.endswith(".pdf")
        assert handle.resource_type == "raw"

    def test_image_resource_type(self, s3_client, s3_storage):
        with Stubber(s3_client) as stubber:
            stubber.add_response("put_object", {}, {
                "Bucket": BUCKET, "Key": ANY, "Body": b"\x89PNG", "ContentType": "image/png", "Metadata": ANY,
            })
            handle = s3_storage.upload(b"\x89PNG", "scan.png", "submissions/abc")
        assert handle.resource_type == "image"

    def test_provider_error_is_storage_error(self, s3_client, s3_storage):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
            with pytest.raises(StorageError):
                s3_storage.upload(b"essay text", "essay.txt", "submissions/abc")


class TestDeleteAndDownload:
    def test_delete_reports_success(self, s3_client, s3_storage):
        handle = StoredFileHandle(public_id="submissions/abc/1.txt", url="https://x/1.txt")
        with Stubber(s3_client) as stubber:
            stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "submissions/abc/1.txt"})
            assert s3_storage.delete(handle) is True

    def test_delete_failure_reported_as_false(self, s3_client, s3_storage):
        handle = StoredFileHandle(public_id="submissions/abc/1.txt", url="https://x/1.txt")
        with Stubber(s3_client) as stubber:
            stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
            assert s3_storage.delete(handle) is False

    def test_download_failure_is_storage_error(self, s3_client, s3_storage):
        handle = StoredFileHandle(public_id="submissions/abc/missing.txt", url="https://x/missing.txt")
        with Stubber(s3_client) as stubber:
            stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
            with pytest.raises(StorageError):
                s3_storage.download(handle)
