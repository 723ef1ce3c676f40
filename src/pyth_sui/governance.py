"""
Governance transaction construction.

Every governance action is one programmable transaction:

    ticket   = <pyth>::set_update_fee::authorize_governance(state, false)
    verified = <wormhole>::vaa::parse_and_verify(wormhole_state, vaa, clock)
    receipt  = <wormhole>::governance_message::verify_vaa<Witness>(wormhole_state, verified, ticket)
    <action consuming receipt>

Package ids are resolved from the state objects on every build, never cached,
so a build after an upgrade targets the upgraded package.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import cast

from pyth_sui.constants import SUI_CLOCK_OBJECT_ID
from pyth_sui.errors import WitnessMismatchError
from pyth_sui.packages import PackageResolver
from pyth_sui.ptb import ProgrammableTransaction, TransactionResult
from pyth_sui.reader import ObjectReader
from pyth_sui.types import StructTag, normalize_address, parse_type_tag
from pyth_sui.vaa import parse_vaa

logger = logging.getLogger(__name__)

GOVERNANCE_WITNESS_MODULE = "governance_witness"
GOVERNANCE_WITNESS_NAME = "GovernanceWitness"


@dataclass(frozen=True)
class GovernancePackages:
    pyth: str
    wormhole: str


def governance_witness_type(pyth_package_id: str) -> str:
    return f"{normalize_address(pyth_package_id)}::{GOVERNANCE_WITNESS_MODULE}::{GOVERNANCE_WITNESS_NAME}"


def check_witness_type(witness_type: str, pyth_package_id: str) -> str:
    """
    Ensure `witness_type` is the oracle package's governance witness.

    Raises:
        WitnessMismatchError: The type is malformed or scoped to another package.
    """
    expected = governance_witness_type(pyth_package_id)
    try:
        tag = parse_type_tag(witness_type)
    except ValueError as e:
        raise WitnessMismatchError(witness_type, expected) from e
    if not (
        isinstance(tag, StructTag)
        and tag.address == normalize_address(pyth_package_id)
        and tag.module == GOVERNANCE_WITNESS_MODULE
        and tag.name == GOVERNANCE_WITNESS_NAME
        and not tag.type_params
    ):
        raise WitnessMismatchError(witness_type, expected)
    return str(tag)


class GovernancePipeline:
    def __init__(self, state_id: str, wormhole_state_id: str) -> None:
        self.state_id = normalize_address(state_id)
        self.wormhole_state_id = normalize_address(wormhole_state_id)

    async def resolve_packages(self, reader: ObjectReader) -> GovernancePackages:
        resolver = PackageResolver(reader)
        packages = GovernancePackages(
            pyth=await resolver.resolve_package(self.state_id),
            wormhole=await resolver.resolve_package(self.wormhole_state_id),
        )
        logger.debug(f"governance packages: pyth={packages.pyth} wormhole={packages.wormhole}")
        return packages

    def decree_receipt(
        self,
        tx: ProgrammableTransaction,
        vaa: bytes,
        packages: GovernancePackages,
        *,
        witness_type: str | None = None,
    ) -> TransactionResult:
        """Append the authorize / parse-and-verify / verify-governance prefix; yield the decree receipt."""
        witness = check_witness_type(witness_type or governance_witness_type(packages.pyth), packages.pyth)

        ticket = tx.move_call(
            f"{packages.pyth}::set_update_fee::authorize_governance",
            [tx.object(self.state_id), tx.pure_bool(False)],
            returns="decree_ticket",
        )
        wormhole_state = tx.object(self.wormhole_state_id, mutable=False)
        verified_vaa = tx.move_call(
            f"{packages.wormhole}::vaa::parse_and_verify",
            [wormhole_state, tx.pure_bytes(vaa), tx.object(SUI_CLOCK_OBJECT_ID, mutable=False)],
            returns="verified_vaa",
        )
        receipt = tx.move_call(
            f"{packages.wormhole}::governance_message::verify_vaa",
            [wormhole_state, verified_vaa, ticket],
            type_arguments=[witness],
            returns="decree_receipt",
        )
        return cast(TransactionResult, receipt)

    async def _prepare(
        self, reader: ObjectReader, vaa: bytes, witness_type: str | None
    ) -> tuple[ProgrammableTransaction, GovernancePackages, TransactionResult]:
        parse_vaa(vaa)
        packages = await self.resolve_packages(reader)
        tx = ProgrammableTransaction()
        receipt = self.decree_receipt(tx, bytes(vaa), packages, witness_type=witness_type)
        return tx, packages, receipt

    async def build_migrate(
        self, reader: ObjectReader, vaa: bytes, *, witness_type: str | None = None
    ) -> ProgrammableTransaction:
        tx, packages, receipt = await self._prepare(reader, vaa, witness_type)
        tx.move_call(f"{packages.pyth}::migrate::migrate", [tx.object(self.state_id), receipt])
        logger.info(f"Built migrate transaction for state {self.state_id}")
        return tx

    async def build_governance_instruction(
        self, reader: ObjectReader, vaa: bytes, *, witness_type: str | None = None
    ) -> ProgrammableTransaction:
        tx, packages, receipt = await self._prepare(reader, vaa, witness_type)
        tx.move_call(
            f"{packages.pyth}::governance::execute_governance_instruction",
            [tx.object(self.state_id), receipt],
        )
        logger.info(f"Built governance instruction transaction for state {self.state_id}")
        return tx

    async def build_upgrade(
        self,
        reader: ObjectReader,
        vaa: bytes,
        modules: Sequence[bytes],
        dependencies: Sequence[str],
        *,
        witness_type: str | None = None,
    ) -> ProgrammableTransaction:
        """
        authorize_upgrade -> Upgrade -> commit_upgrade, after the decree receipt.

        Raises:
            ValueError: `modules` is empty.
        """
        if not modules:
            raise ValueError("Upgrade requires at least one compiled module")
        tx, packages, receipt = await self._prepare(reader, vaa, witness_type)
        upgrade_ticket = cast(
            TransactionResult,
            tx.move_call(
                f"{packages.pyth}::contract_upgrade::authorize_upgrade",
                [tx.object(self.state_id), receipt],
                returns="upgrade_ticket",
            ),
        )
        upgrade_receipt = tx.upgrade(
            modules=modules,
            dependencies=dependencies,
            package_id=packages.pyth,
            ticket=upgrade_ticket,
        )
        tx.move_call(
            f"{packages.pyth}::contract_upgrade::commit_upgrade",
            [tx.object(self.state_id), upgrade_receipt],
        )
        logger.info(f"Built upgrade transaction for {packages.pyth} ({len(modules)} modules)")
        return tx
