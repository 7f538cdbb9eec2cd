from botocore.config import Config
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from polybuckets.interfaces import IStorageGateway
from polybuckets.models import BucketRecord
from polybuckets.models import ListingPage
from polybuckets.models import ObjectSummary
from zope.interface import implementer

import boto3
import logging


logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3OperationError(Exception):
    """Wraps botocore errors to avoid leaking AWS infrastructure details."""

    def __init__(self, message, code="Unknown"):
        super().__init__(message)
        self.code = code


class RemoteListError(S3OperationError):
    """Listing buckets, or objects under a prefix, failed."""

    def __init__(self, code, bucket=None, prefix=None):
        if bucket is None:
            target = "buckets"
        else:
            target = f"objects in bucket={bucket!r} prefix={prefix or ''!r}"
        super().__init__(f"S3 list {target} failed: {code}", code)
        self.bucket = bucket
        self.prefix = prefix


class RemoteFetchError(S3OperationError):
    """Retrieving an object body failed."""

    def __init__(self, code, bucket, key):
        super().__init__(
            f"S3 get object failed for bucket={bucket!r} key={key!r}: {code}", code
        )
        self.bucket = bucket
        self.key = key

    @property
    def missing(self):
        return self.code in _MISSING_CODES


def _error_code(e):
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Code", "Unknown")
    return type(e).__name__


@implementer(IStorageGateway)
class S3Client:
    """Thin boto3 wrapper exposing the three read operations the browser needs."""

    def __init__(
        self,
        endpoint_url=None,
        region_name=None,
        profile_name=None,
        aws_access_key_id=None,
        aws_secret_access_key=None,
        addressing_style="auto",
        connect_timeout=60,
        read_timeout=60,
    ):
        if endpoint_url:
            # Emulators and non-AWS endpoints are addressed path-style.
            if not endpoint_url.startswith("http"):
                endpoint_url = "http://" + endpoint_url
            addressing_style = "path"
        self.endpoint_url = endpoint_url

        config = Config(
            s3={"addressing_style": addressing_style},
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
        )

        kwargs = {"config": config}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if region_name:
            kwargs["region_name"] = region_name
        if aws_access_key_id:
            kwargs["aws_access_key_id"] = aws_access_key_id
        if aws_secret_access_key:
            kwargs["aws_secret_access_key"] = aws_secret_access_key

        session = boto3.session.Session(profile_name=profile_name or None)
        self._client = session.client("s3", **kwargs)

    @classmethod
    def from_settings(cls, settings):
        return cls(
            endpoint_url=settings.aws_endpoint,
            region_name=settings.aws_region,
            profile_name=settings.aws_profile,
        )

    def list_buckets(self):
        try:
            result = self._client.list_buckets()
        except (ClientError, BotoCoreError) as e:
            logger.debug("S3 list_buckets failed: %s", e)
            raise RemoteListError(_error_code(e)) from e
        return [
            BucketRecord(name=b["Name"], creation_date=b.get("CreationDate"))
            for b in result.get("Buckets", [])
        ]

    def list_objects(self, bucket, prefix, delimiter="/"):
        try:
            result = self._client.list_objects_v2(
                Bucket=bucket, Prefix=prefix, Delimiter=delimiter
            )
        except (ClientError, BotoCoreError) as e:
            logger.debug("S3 list_objects_v2 failed for %s/%s: %s", bucket, prefix, e)
            raise RemoteListError(_error_code(e), bucket, prefix) from e
        return ListingPage(
            common_prefixes=tuple(
                p["Prefix"] for p in result.get("CommonPrefixes", [])
            ),
            contents=tuple(
                ObjectSummary(
                    key=obj["Key"],
                    size=obj.get("Size", 0),
                    last_modified=obj.get("LastModified"),
                )
                for obj in result.get("Contents", [])
            ),
        )

    def get_object(self, bucket, key):
        try:
            result = self._client.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.debug("S3 get_object failed for %s/%s: %s", bucket, key, e)
            raise RemoteFetchError(_error_code(e), bucket, key) from e
        return result["Body"]
