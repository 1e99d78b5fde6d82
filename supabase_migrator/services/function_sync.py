"""
Edge-function artifact sync.

Backs up every function of a project into portable artifacts and redeploys
artifacts onto a project. One function failing never stops the others; a
registry that cannot be listed stops the whole batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from supabase_migrator.exceptions import APIError, RemoteListingError
from supabase_migrator.services.functions_client import FunctionsClient
from supabase_migrator.types import FailedDeploy, FunctionArtifact, FunctionSyncStats
from supabase_migrator.utils.logging import log_with_context


@dataclass
class FunctionBackupResult:
    """Artifacts fetched from a project plus counters for the fetch."""

    artifacts: list[FunctionArtifact] = field(default_factory=list)
    failures: list[FailedDeploy] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.artifacts) + len(self.failures)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def __str__(self) -> str:
        text = f"{len(self.artifacts)} functions backed up"
        if self.failures:
            text += f", {self.failed} failed"
        return text


def backup_functions(client: FunctionsClient) -> FunctionBackupResult:
    """Fetch every function of the client's project.

    Raises:
        RemoteListingError: If the functions cannot be listed.
    """
    functions = client.list_functions()
    log_with_context(logging.INFO, f"Found {len(functions)} edge functions")

    result = FunctionBackupResult()
    for function in functions:
        log_with_context(logging.DEBUG, f"Backing up function: {function.slug}")
        try:
            artifact = client.fetch_artifact(function)
        except (APIError, requests.RequestException, ValueError) as e:
            log_with_context(
                logging.WARNING,
                f"Failed to back up function {function.slug}: {e}",
                slug=function.slug,
            )
            result.failures.append(FailedDeploy(function.slug, str(e)))
            continue
        result.artifacts.append(artifact)

    return result


def restore_functions(
    client: FunctionsClient, artifacts: list[FunctionArtifact]
) -> FunctionSyncStats:
    """Deploy each artifact, creating or updating as needed.

    Args:
        client: Client for the target project.
        artifacts: Functions to deploy, in order.

    Returns:
        Counters with ``created + updated + failed == attempted``.

    Raises:
        RemoteListingError: If the existence check for any artifact fails.
    """
    stats = FunctionSyncStats()
    for artifact in artifacts:
        try:
            action = client.deploy_function(artifact)
        except RemoteListingError:
            raise
        except APIError as e:
            log_with_context(
                logging.WARNING,
                f"Failed to deploy function {artifact.slug}: {e}",
                slug=artifact.slug,
            )
            stats.record_failure(artifact.slug, str(e))
            continue
        log_with_context(
            logging.INFO,
            f"Deployed function {artifact.slug} ({action.value})",
            slug=artifact.slug,
        )
        stats.record_deploy(action)
    return stats
