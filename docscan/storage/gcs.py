import asyncio

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import storage

from docscan.core.config import get_settings
from docscan.storage.base import StorageBackend


class GCSStorage(StorageBackend):
    """Google Cloud Storage bucket; API faults are re-raised as OSError like local disk faults."""

    def __init__(self) -> None:
        settings = get_settings()
        self.bucket_name = settings.gcs_bucket_name or "docscan-corpus"
        self._client = storage.Client()
        self._bucket = self._client.bucket(self.bucket_name)

    async def put(self, key: str, body: bytes, content_type: str | None = None) -> str:
        blob = self._bucket.blob(key)
        try:
            await asyncio.to_thread(
                blob.upload_from_string,
                body,
                content_type=content_type or "text/plain; charset=utf-8",
            )
        except GoogleAPIError as e:
            raise OSError(f"GCS upload failed for {key}: {e}") from e
        return f"gs://{self.bucket_name}/{key}"

    async def get(self, key: str) -> bytes:
        blob = self._bucket.blob(key)
        try:
            return await asyncio.to_thread(blob.download_as_bytes)
        except NotFound as e:
            raise FileNotFoundError(key) from e
        except GoogleAPIError as e:
            raise OSError(f"GCS download failed for {key}: {e}") from e

    async def delete(self, key: str) -> None:
        blob = self._bucket.blob(key)
        try:
            await asyncio.to_thread(blob.delete)
        except NotFound:
            return
        except GoogleAPIError as e:
            raise OSError(f"GCS delete failed for {key}: {e}") from e
