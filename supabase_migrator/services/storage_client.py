"""Client for the Supabase Storage HTTP API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from supabase_migrator.constants import (
    BUCKET_EXISTS_MARKER,
    DEFAULT_TIMEOUT,
    LIST_PAGE_SIZE,
    STORAGE_API_PATH,
    TRANSFER_TIMEOUT,
)
from supabase_migrator.core.context import EndpointDescriptor
from supabase_migrator.exceptions import RemoteListingError, StorageError
from supabase_migrator.services.http import create_session, is_success, response_text, send
from supabase_migrator.types import Bucket, StorageObject
from supabase_migrator.utils.logging import log_with_context


class StorageClient:
    """Bucket and object operations against one project's storage service.

    Every request carries the service key both as a bearer token and as the
    ``apikey`` header.
    """

    def __init__(
        self,
        api_url: str,
        service_key: str,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.session = session or create_session()
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    @classmethod
    def for_endpoint(
        cls, endpoint: EndpointDescriptor, session: requests.Session | None = None
    ) -> StorageClient:
        """Build a client, failing early if the endpoint has no service key."""
        key = endpoint.require_service_key("storage operations")
        return cls(endpoint.api_url, key, session=session)

    @property
    def storage_url(self) -> str:
        return f"{self.api_url}{STORAGE_API_PATH}"

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.storage_url}/object/{quote(bucket, safe='')}/{quote(path)}"

    # -------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------

    def list_buckets(self) -> list[Bucket]:
        url = f"{self.storage_url}/bucket"
        log_with_context(logging.DEBUG, f"Listing buckets: {url}")
        try:
            response = send(
                self.session, "GET", url, headers=self._headers, timeout=DEFAULT_TIMEOUT
            )
        except requests.RequestException as e:
            raise RemoteListingError(f"Failed to list buckets: {e}") from e

        if not is_success(response):
            body = response_text(response)
            raise RemoteListingError(
                f"Failed to list buckets: {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
        return [Bucket.from_api(item) for item in response.json()]

    def create_bucket(self, name: str, public: bool = False) -> bool:
        """Create a bucket.

        Returns:
            True if the bucket was created, False if it already existed.

        Raises:
            StorageError: For any failure other than "already exists".
        """
        url = f"{self.storage_url}/bucket"
        log_with_context(logging.DEBUG, f"Creating bucket: {name}", bucket=name)
        payload = {"name": name, "public": public}
        try:
            response = send(
                self.session,
                "POST",
                url,
                json_body=payload,
                headers=self._headers,
                timeout=DEFAULT_TIMEOUT,
            )
        except requests.RequestException as e:
            raise StorageError(f"Failed to create bucket '{name}': {e}") from e

        if is_success(response):
            return True

        body = response_text(response)
        if BUCKET_EXISTS_MARKER in body.lower():
            log_with_context(
                logging.DEBUG, f"Bucket '{name}' already exists on target", bucket=name
            )
            return False
        raise StorageError(
            f"Failed to create bucket '{name}': {response.status_code} - {body}",
            status_code=response.status_code,
            body=body,
        )

    # -------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------

    def list_objects(
        self,
        bucket: str,
        prefix: str | None = None,
        offset: int = 0,
        limit: int = LIST_PAGE_SIZE,
    ) -> list[StorageObject]:
        """Return one page of entries directly under ``prefix``."""
        url = f"{self.storage_url}/object/list/{quote(bucket, safe='')}"
        payload: dict[str, object] = {"limit": limit, "offset": offset}
        if prefix is not None:
            payload["prefix"] = prefix

        try:
            response = send(
                self.session,
                "POST",
                url,
                json_body=payload,
                headers=self._headers,
                timeout=DEFAULT_TIMEOUT,
            )
        except requests.RequestException as e:
            raise RemoteListingError(
                f"Failed to list objects in '{bucket}': {e}"
            ) from e

        if not is_success(response):
            body = response_text(response)
            raise RemoteListingError(
                f"Failed to list objects in '{bucket}': {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
        return [StorageObject.from_api(item, prefix or "") for item in response.json()]

    def list_all_objects(self, bucket: str) -> list[StorageObject]:
        """Enumerate every object in ``bucket``.

        Pages through each folder and descends into folder placeholders, so
        the returned names are full paths within the bucket.
        """
        objects: list[StorageObject] = []
        folders: list[str | None] = [None]

        while folders:
            prefix = folders.pop()
            offset = 0
            while True:
                page = self.list_objects(bucket, prefix, offset)
                for entry in page:
                    if entry.is_folder:
                        folders.append(entry.name)
                    else:
                        objects.append(entry)
                if len(page) < LIST_PAGE_SIZE:
                    break
                offset += LIST_PAGE_SIZE

        log_with_context(
            logging.DEBUG,
            f"Found {len(objects)} objects in bucket {bucket}",
            bucket=bucket,
        )
        return objects

    def download(self, bucket: str, path: str) -> bytes:
        log_with_context(logging.DEBUG, f"Downloading: {bucket}/{path}", bucket=bucket)
        response = send(
            self.session,
            "GET",
            self._object_url(bucket, path),
            headers=self._headers,
            timeout=TRANSFER_TIMEOUT,
        )
        if not is_success(response):
            body = response_text(response)
            raise StorageError(
                f"Failed to download '{bucket}/{path}': {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
        return response.content

    def upload(self, bucket: str, path: str, data: bytes) -> None:
        """Store ``data`` at ``bucket/path``, replacing any existing object."""
        log_with_context(logging.DEBUG, f"Uploading: {bucket}/{path}", bucket=bucket)
        headers = {
            **self._headers,
            "Content-Type": "application/octet-stream",
            "x-upsert": "true",
        }
        response = send(
            self.session,
            "POST",
            self._object_url(bucket, path),
            data=data,
            headers=headers,
            timeout=TRANSFER_TIMEOUT,
        )
        if not is_success(response):
            body = response_text(response)
            raise StorageError(
                f"Failed to upload '{bucket}/{path}': {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
