# stacker/node/client.py

import asyncio
import json
from typing import Any, Optional

import aiohttp
from loguru import logger

from stacker.pox.errors import NodeRequestError
from stacker.pox.types import AccountStatus, ProtocolInfo, TxResult

DEFAULT_REQUEST_TIMEOUT = 30.0

POX_INFO_PATH = "/v2/pox"
ACCOUNTS_PATH = "/v2/accounts/{address}?proof=0"
TRANSACTIONS_PATH = "/v2/transactions"


class StacksNodeClient:
    """
    Async client for the Stacks node RPC endpoints the stacker needs.

    One aiohttp session is shared across all calls of a run and closed at
    the end of it. HTTP failures surface as NodeRequestError; broadcast
    rejections come back as a TxResult carrying the node's error instead.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "StacksNodeClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _decode(self, path: str, status: int, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            raise NodeRequestError(
                path, status, f"Node returned invalid JSON for {path}: {text[:200]}"
            )

    async def _get_json(self, path: str) -> Any:
        session = await self._get_session()
        try:
            async with session.get(
                f"{self.base_url}{path}",
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                text = await response.text()
                if response.status != 200:
                    raise NodeRequestError(
                        path,
                        response.status,
                        f"Node returned status {response.status} for {path}: {text[:200]}",
                    )
                return self._decode(path, response.status, text)
        except asyncio.TimeoutError:
            raise NodeRequestError(path, message=f"Timeout requesting {path}")
        except aiohttp.ClientError as e:
            raise NodeRequestError(path, message=f"Error requesting {path}: {e}") from e

    async def get_pox_info(self) -> ProtocolInfo:
        data = await self._get_json(POX_INFO_PATH)
        try:
            return ProtocolInfo.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise NodeRequestError(
                POX_INFO_PATH, message=f"Unexpected pox info response: {e}"
            ) from e

    async def get_account_status(self, address: str) -> AccountStatus:
        path = ACCOUNTS_PATH.format(address=address)
        data = await self._get_json(path)
        try:
            return AccountStatus.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise NodeRequestError(
                path, message=f"Unexpected account response for {address}: {e}"
            ) from e

    async def broadcast_transaction(self, raw_tx: bytes) -> TxResult:
        session = await self._get_session()
        path = TRANSACTIONS_PATH
        try:
            async with session.post(
                f"{self.base_url}{path}",
                data=raw_tx,
                headers={"Content-Type": "application/octet-stream"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                text = await response.text()
                if response.status not in (200, 400):
                    raise NodeRequestError(
                        path,
                        response.status,
                        f"Broadcast returned status {response.status}: {text[:200]}",
                    )
                result = TxResult.from_response(
                    self._decode(path, response.status, text)
                )
        except asyncio.TimeoutError:
            raise NodeRequestError(path, message="Timeout broadcasting transaction")
        except aiohttp.ClientError as e:
            raise NodeRequestError(
                path, message=f"Error broadcasting transaction: {e}"
            ) from e

        if not result.ok:
            logger.warning(
                f"Node rejected transaction: {result.error} ({result.reason})"
            )
        return result

    async def close(self):
        """Clean up resources."""
        if self._session:
            await self._session.close()
            self._session = None
