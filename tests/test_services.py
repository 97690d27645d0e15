"""Tests for the boto3 gateways."""
import io
from unittest.mock import MagicMock, Mock, patch

import pytest

from asset_deployer.services.invalidation import CloudFrontInvalidator
from asset_deployer.services.object_store import S3ObjectStore, build_session


class TestBuildSession:
    def test_maps_plugin_credential_keys(self):
        with patch("asset_deployer.services.object_store.boto3.session.Session") as session_cls:
            build_session({"accessKeyId": "AK", "secretAccessKey": "SK", "region_name": "eu-west-1", "x": None})
        session_cls.assert_called_once_with(
            aws_access_key_id="AK", aws_secret_access_key="SK", region_name="eu-west-1"
        )


class TestS3ObjectStore:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.mark.asyncio
    async def test_upload_streams_body_with_extra_args(self, client):
        store = S3ObjectStore(client=client)
        body = io.BytesIO(b"data")

        result = await store.upload(
            {"Bucket": "assets", "Key": "app.js", "Body": body, "ACL": "public-read", "ContentType": "text/javascript"}
        )

        client.upload_fileobj.assert_called_once_with(
            body,
            "assets",
            "app.js",
            ExtraArgs={"ACL": "public-read", "ContentType": "text/javascript"},
            Callback=None,
        )
        assert result == {"Bucket": "assets", "Key": "app.js"}

    @pytest.mark.asyncio
    async def test_upload_error_propagates(self, client):
        client.upload_fileobj.side_effect = RuntimeError("denied")
        store = S3ObjectStore(client=client)
        with pytest.raises(RuntimeError, match="denied"):
            await store.upload({"Bucket": "b", "Key": "k", "Body": io.BytesIO()})

    @pytest.mark.asyncio
    async def test_list_objects_page(self, client):
        client.list_objects_v2.return_value = {
            "Contents": [{"Key": "a"}, {"Key": "b"}],
            "IsTruncated": True,
            "NextContinuationToken": "t1",
        }
        store = S3ObjectStore(client=client)

        keys, token = await store.list_objects("assets", "t0", "v1/")

        client.list_objects_v2.assert_called_once_with(Bucket="assets", ContinuationToken="t0", Prefix="v1/")
        assert keys == ["a", "b"]
        assert token == "t1"

    @pytest.mark.asyncio
    async def test_list_objects_last_page(self, client):
        client.list_objects_v2.return_value = {"IsTruncated": False}
        keys, token = await S3ObjectStore(client=client).list_objects("assets")
        client.list_objects_v2.assert_called_once_with(Bucket="assets")
        assert keys == []
        assert token is None

    @pytest.mark.asyncio
    async def test_delete_objects(self, client):
        client.delete_objects.return_value = {"Deleted": [{"Key": "a"}]}
        response = await S3ObjectStore(client=client).delete_objects("assets", ["a"])
        client.delete_objects.assert_called_once_with(
            Bucket="assets", Delete={"Objects": [{"Key": "a"}], "Quiet": False}
        )
        assert response == {"Deleted": [{"Key": "a"}]}

    def test_client_built_from_session(self):
        session = Mock()
        S3ObjectStore(session=session)
        session.client.assert_called_once_with("s3")


class TestCloudFrontInvalidator:
    @pytest.mark.asyncio
    async def test_create_invalidation(self):
        client = MagicMock()
        client.create_invalidation.return_value = {"Invalidation": {"Id": "I123"}}
        invalidator = CloudFrontInvalidator(client=client)

        invalidation_id = await invalidator.create_invalidation("E1", "ref-1", ["/*", "/index.html"])

        assert invalidation_id == "I123"
        client.create_invalidation.assert_called_once_with(
            DistributionId="E1",
            InvalidationBatch={
                "CallerReference": "ref-1",
                "Paths": {"Quantity": 2, "Items": ["/*", "/index.html"]},
            },
        )

    def test_client_built_from_session(self):
        session = Mock()
        CloudFrontInvalidator(session=session)
        session.client.assert_called_once_with("cloudfront")
