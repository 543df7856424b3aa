import asyncio

import pytest

from stacker.pox.fees import DEFAULT_START_FEE, FeeSequencer


@pytest.mark.asyncio
class TestFeeSequencer:
    async def test_sequential_fees_start_at_baseline(self):
        fees = FeeSequencer()
        issued = [await fees.next_fee() for _ in range(5)]
        assert issued == [1000, 1001, 1002, 1003, 1004]
        assert issued[0] == DEFAULT_START_FEE

    async def test_custom_baseline(self):
        fees = FeeSequencer(start_fee=250)
        assert await fees.next_fee() == 250
        assert fees.peek == 251

    async def test_concurrent_callers_never_share_a_fee(self):
        fees = FeeSequencer()
        issued = await asyncio.gather(*(fees.next_fee() for _ in range(50)))
        assert len(set(issued)) == 50
        assert sorted(issued) == list(range(1000, 1050))

    async def test_new_sequencer_restarts_from_baseline(self):
        first = FeeSequencer()
        await first.next_fee()
        await first.next_fee()
        second = FeeSequencer()
        assert await second.next_fee() == DEFAULT_START_FEE


def test_rejects_negative_baseline():
    with pytest.raises(ValueError):
        FeeSequencer(start_fee=-1)
