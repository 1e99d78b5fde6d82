"""Client for the edge-function endpoints of the Supabase Management API."""

from __future__ import annotations

import io
import json
import logging
import tarfile
from pathlib import PurePosixPath
from urllib.parse import quote, urlparse

import requests

from supabase_migrator.constants import (
    DEFAULT_ENTRYPOINT,
    DEFAULT_TIMEOUT,
    FUNCTION_METADATA_FIELD,
    MANAGEMENT_API_URL,
    TRANSFER_TIMEOUT,
)
from supabase_migrator.core.context import EndpointDescriptor
from supabase_migrator.exceptions import (
    APIError,
    FunctionDeployError,
    RemoteListingError,
)
from supabase_migrator.services.http import create_session, is_success, response_text, send
from supabase_migrator.types import (
    DeployAction,
    FunctionArtifact,
    FunctionFile,
    FunctionInfo,
)
from supabase_migrator.utils.logging import log_with_context


def _is_safe_member(name: str) -> bool:
    path = PurePosixPath(name)
    return bool(path.parts) and not path.is_absolute() and ".." not in path.parts


def safe_source_name(name: str | None) -> str:
    """Reduce a registry-supplied file name to a path relative to the function directory.

    ``file://`` URLs and absolute or parent-relative paths keep only their
    final component; anything left empty becomes the default entrypoint.
    """
    if not name:
        return DEFAULT_ENTRYPOINT
    if name.startswith("file://"):
        name = urlparse(name).path
    path = PurePosixPath(name)
    if path.is_absolute() or ".." in path.parts:
        path = PurePosixPath(path.name)
    if not path.parts or path.name in (".", ".."):
        return DEFAULT_ENTRYPOINT
    return path.as_posix()


def extract_source_archive(data: bytes) -> list[FunctionFile]:
    """Unpack a function source archive.

    Gzip-compressed and plain tar archives are both accepted. Directory
    entries and members with absolute or parent-relative paths are skipped.
    Data that is not an archive at all is treated as a single entrypoint file.

    Args:
        data: Raw response body.

    Returns:
        The regular files contained in the archive.
    """
    try:
        archive = tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
    except tarfile.TarError:
        log_with_context(
            logging.DEBUG, "Function body is not an archive, treating it as source text"
        )
        return [
            FunctionFile(DEFAULT_ENTRYPOINT, data.decode("utf-8", errors="replace"))
        ]

    files: list[FunctionFile] = []
    with archive:
        for member in archive.getmembers():
            if not member.isfile():
                continue
            if not _is_safe_member(member.name):
                log_with_context(
                    logging.WARNING,
                    f"Skipping unsafe path in function archive: {member.name}",
                )
                continue
            extracted = archive.extractfile(member)
            if extracted is None:
                continue
            content = extracted.read().decode("utf-8", errors="replace")
            files.append(FunctionFile(PurePosixPath(member.name).as_posix(), content))
    return files


class FunctionsClient:
    """Lists, downloads, and deploys edge functions for one project."""

    def __init__(
        self,
        project_ref: str,
        access_token: str,
        base_url: str = MANAGEMENT_API_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.project_ref = project_ref
        self.base_url = base_url.rstrip("/")
        self.session = session or create_session()
        self._headers = {"Authorization": f"Bearer {access_token}"}

    @classmethod
    def for_endpoint(
        cls, endpoint: EndpointDescriptor, session: requests.Session | None = None
    ) -> FunctionsClient:
        """Build a client, failing early if the endpoint has no access token."""
        token = endpoint.require_access_token("edge function operations")
        return cls(
            endpoint.project_ref,
            token,
            base_url=endpoint.management_api_url,
            session=session,
        )

    @property
    def functions_url(self) -> str:
        return f"{self.base_url}/v1/projects/{self.project_ref}/functions"

    def _function_url(self, slug: str) -> str:
        return f"{self.functions_url}/{quote(slug, safe='')}"

    def list_functions(self) -> list[FunctionInfo]:
        """Return every function deployed in the project.

        Raises:
            RemoteListingError: If the listing request fails.
        """
        url = self.functions_url
        log_with_context(logging.DEBUG, f"Listing edge functions: {url}")
        try:
            response = send(
                self.session, "GET", url, headers=self._headers, timeout=DEFAULT_TIMEOUT
            )
        except requests.RequestException as e:
            raise RemoteListingError(f"Failed to list functions: {e}") from e

        if not is_success(response):
            body = response_text(response)
            raise RemoteListingError(
                f"Failed to list functions: {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
        return [FunctionInfo.from_api(item) for item in response.json()]

    def function_exists(self, slug: str) -> bool:
        return any(function.slug == slug for function in self.list_functions())

    def download_function_source(self, slug: str) -> list[FunctionFile]:
        """Fetch the source files of one function.

        The endpoint answers either with JSON holding a single source file or
        with a tar archive of the whole function directory.

        Raises:
            APIError: If the request fails or returns a non-success status.
        """
        url = f"{self._function_url(slug)}/body"
        log_with_context(logging.DEBUG, f"Downloading function source: {url}", slug=slug)
        headers = {**self._headers, "Accept": "application/octet-stream"}
        try:
            response = send(
                self.session, "GET", url, headers=headers, timeout=TRANSFER_TIMEOUT
            )
        except requests.RequestException as e:
            raise APIError(f"Failed to download function '{slug}': {e}") from e

        if not is_success(response):
            body = response_text(response)
            raise APIError(
                f"Failed to download function '{slug}': {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            payload = response.json()
            source = payload.get("body")
            if source is None:
                return []
            name = safe_source_name(payload.get("entrypoint_path"))
            return [FunctionFile(name, source)]

        return extract_source_archive(response.content)

    def fetch_artifact(self, function: FunctionInfo) -> FunctionArtifact:
        """Package a listed function and its source into a portable artifact."""
        return FunctionArtifact(
            slug=function.slug,
            name=function.name,
            verify_jwt=function.verify_jwt,
            entrypoint_path=function.entrypoint_path,
            import_map_path=function.import_map_path,
            files=self.download_function_source(function.slug),
        )

    def deploy_function(self, artifact: FunctionArtifact) -> DeployAction:
        """Create the function, or update it if the slug is already deployed.

        The registry is listed afresh for every call so the create/update
        decision reflects the current remote state.

        Returns:
            Whether the function was created or updated.

        Raises:
            RemoteListingError: If the existence check fails.
            FunctionDeployError: If the registry rejects the deploy.
        """
        exists = self.function_exists(artifact.slug)
        action = DeployAction.UPDATED if exists else DeployAction.CREATED
        method = "PATCH" if exists else "POST"
        url = self._function_url(artifact.slug) if exists else self.functions_url

        log_with_context(
            logging.DEBUG,
            f"Deploying function '{artifact.slug}' (exists: {exists})",
            slug=artifact.slug,
        )

        # (None, text) makes requests send a plain form field with no filename
        form = [(FUNCTION_METADATA_FIELD, (None, json.dumps(artifact.metadata())))]
        form += [(f.name, (None, f.content)) for f in artifact.files]

        try:
            response = send(
                self.session,
                method,
                url,
                files=form,
                headers=self._headers,
                timeout=TRANSFER_TIMEOUT,
            )
        except requests.RequestException as e:
            raise FunctionDeployError(
                f"Failed to deploy function '{artifact.slug}': {e}"
            ) from e

        if not is_success(response):
            body = response_text(response)
            raise FunctionDeployError(
                f"Failed to deploy function '{artifact.slug}': {response.status_code} - {body}",
                status_code=response.status_code,
                body=body,
            )
        return action
