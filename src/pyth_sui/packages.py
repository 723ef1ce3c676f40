"""Resolve the package that currently owns a state object."""

from __future__ import annotations

import logging

from pyth_sui.errors import UnparsableError, UpgradeCapabilityMissingError
from pyth_sui.reader import ObjectReader

logger = logging.getLogger(__name__)


class PackageResolver:
    """
    Maps a state object to its package via the embedded `upgrade_cap.package`.

    Nothing is cached: the answer changes when the package is upgraded, so every
    call re-reads the state object.
    """

    def __init__(self, reader: ObjectReader) -> None:
        self.reader = reader

    async def resolve_package(self, object_id: str) -> str:
        state = await self.reader.fetch(object_id)
        if not state.content.has("upgrade_cap"):
            raise UpgradeCapabilityMissingError(object_id)
        try:
            package_id = state.content.struct("upgrade_cap").address("package")
        except UnparsableError as e:
            raise UpgradeCapabilityMissingError(object_id) from e
        logger.debug(f"object {object_id} belongs to package {package_id}")
        return package_id
