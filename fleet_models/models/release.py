"""Release model operations used by the application model."""

from __future__ import annotations

import logging
from typing import Any

from fleet_models.errors import AmbiguousReleaseError, ReleaseNotFoundError
from fleet_models.transport.odata import merge_options
from fleet_models.transport.pine import PineClient
from fleet_models.types import Record
from fleet_models.utils import is_id

logger = logging.getLogger(__name__)


class ReleaseModel:
    """Release lookups."""

    def __init__(self, pine: PineClient) -> None:
        self._pine = pine

    async def get(
        self,
        commit_or_id: str | int,
        options: dict[str, Any] | None = None,
    ) -> Record:
        """Get a release by id or by (a prefix of) its commit hash.

        Args:
            commit_or_id: Release id, full commit hash or a unique prefix.
            options: Extra query options.

        Returns:
            Release record.

        Raises:
            ReleaseNotFoundError: If nothing matches.
            AmbiguousReleaseError: If a commit prefix matches several releases.
        """
        if commit_or_id is None:
            raise ReleaseNotFoundError(commit_or_id)

        if is_id(commit_or_id):
            release = await self._pine.get("release", id=commit_or_id, options=options)
            if release is None:
                raise ReleaseNotFoundError(commit_or_id)
            return release  # type: ignore[return-value]

        releases = await self._pine.get(
            "release",
            options=merge_options(
                {"$filter": {"commit": {"$startswith": commit_or_id}}},
                options,
            ),
        )
        if not releases:
            raise ReleaseNotFoundError(commit_or_id)
        if len(releases) > 1:
            raise AmbiguousReleaseError(commit_or_id)
        return releases[0]  # type: ignore[index]


__all__ = ["ReleaseModel"]
