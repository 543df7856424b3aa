from loguru import logger

from stacker.node.client import StacksNodeClient
from stacker.pox.types import StackExtendArgs, StackStxArgs, TxResult
from stacker.signing.clarity import (
    BufferCV,
    ClarityValue,
    SomeCV,
    UIntCV,
    pox_address_cv,
)
from stacker.signing.signer import TESTNET_CHAIN_ID
from stacker.signing.transactions import TESTNET_TX_VERSION, make_contract_call


class StackingClient:
    """Builds signed pox-4 contract calls and hands them to the node.

    Broadcast results are returned as-is; retrying is left to the caller.
    """

    def __init__(
        self,
        node: StacksNodeClient,
        contract_id: str,
        tx_version: int = TESTNET_TX_VERSION,
        chain_id: int = TESTNET_CHAIN_ID,
    ):
        self.node = node
        self.contract_address, _, self.contract_name = contract_id.partition(".")
        if not self.contract_name:
            raise ValueError(f"Invalid contract id: {contract_id}")
        self.tx_version = tx_version
        self.chain_id = chain_id

    async def _submit(
        self,
        function_name: str,
        function_args: list[ClarityValue],
        private_key: bytes,
        nonce: int,
        fee: int,
        compressed: bool,
    ) -> TxResult:
        tx = make_contract_call(
            contract_address=self.contract_address,
            contract_name=self.contract_name,
            function_name=function_name,
            function_args=function_args,
            private_key=private_key,
            nonce=nonce,
            fee=fee,
            compressed=compressed,
            version=self.tx_version,
            chain_id=self.chain_id,
        )
        logger.debug(f"Broadcasting {function_name} tx 0x{tx.txid()}")
        return await self.node.broadcast_transaction(tx.serialize())

    async def stack(self, args: StackStxArgs) -> TxResult:
        return await self._submit(
            "stack-stx",
            [
                UIntCV(args.amount_ustx),
                pox_address_cv(args.pox_address),
                UIntCV(args.burn_block_height),
                UIntCV(args.cycles),
                SomeCV(BufferCV(bytes.fromhex(args.signer_signature))),
                BufferCV(args.signer_key),
                UIntCV(args.max_amount),
                UIntCV(args.auth_id),
            ],
            args.private_key,
            args.nonce,
            args.fee,
            args.compressed,
        )

    async def stack_extend(self, args: StackExtendArgs) -> TxResult:
        return await self._submit(
            "stack-extend",
            [
                UIntCV(args.extend_cycles),
                pox_address_cv(args.pox_address),
                SomeCV(BufferCV(bytes.fromhex(args.signer_signature))),
                BufferCV(args.signer_key),
                UIntCV(args.max_amount),
                UIntCV(args.auth_id),
            ],
            args.private_key,
            args.nonce,
            args.fee,
            args.compressed,
        )
