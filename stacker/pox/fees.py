import asyncio

DEFAULT_START_FEE = 1000


class FeeSequencer:
    """Hands out strictly increasing transaction fees within one run.

    Two transactions with identical fee and nonce get rejected by the node
    as duplicates, so every action in a run draws a distinct fee. The
    counter lives on the instance; a new run builds a new sequencer.
    """

    def __init__(self, start_fee: int = DEFAULT_START_FEE):
        if start_fee < 0:
            raise ValueError(f"Invalid start fee: {start_fee}")
        self._next_fee = start_fee
        self._lock = asyncio.Lock()

    @property
    def peek(self) -> int:
        return self._next_fee

    async def next_fee(self) -> int:
        async with self._lock:
            fee = self._next_fee
            self._next_fee += 1
            return fee
