"""Tests for handcue.inference.sequencer — ordered result correlation."""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from handcue.errors import FrameDroppedError, FrameProcessingError
from handcue.inference.sequencer import ResultSequencer
from handcue.types import Hand


def _frame(value: int) -> np.ndarray:
    return np.full((4, 4, 4), value, dtype=np.uint8)


class TestResultSequencer:
    """Tests for ResultSequencer."""

    def test_registers_single_callback(self, make_provider) -> None:
        provider = make_provider(auto=False)
        ResultSequencer(provider)
        assert provider.callback_registrations == 1

    def test_fifo_attribution(self, make_provider, make_hand) -> None:
        provider = make_provider(auto=False)
        hands = [[make_hand(offset=(0.01 * i, 0.0), handedness=f"F{i}")] for i in range(1, 4)]

        async def scenario() -> list[list[Hand]]:
            sequencer = ResultSequencer(provider)
            tasks = [asyncio.create_task(sequencer.submit(_frame(i))) for i in range(3)]
            await asyncio.sleep(0)
            assert sequencer.pending_count == 3

            for ticket, result in zip(provider.submitted, hands):
                provider.respond(ticket, result)
            return await asyncio.gather(*tasks)

        results = asyncio.run(scenario())
        assert [r[0].handedness for r in results] == ["F1", "F2", "F3"]

    def test_tickets_strictly_increase(self, make_provider) -> None:
        provider = make_provider(auto=True)

        async def scenario() -> None:
            sequencer = ResultSequencer(provider)
            for i in range(5):
                await sequencer.submit(_frame(i))

        asyncio.run(scenario())
        assert provider.submitted == sorted(set(provider.submitted))
        assert len(provider.submitted) == 5

    def test_late_submitters_wait_their_turn(self, make_provider, fist_hand: Hand) -> None:
        provider = make_provider(auto=False)
        order: list[int] = []

        async def submit(sequencer: ResultSequencer, idx: int) -> None:
            await sequencer.submit(_frame(idx))
            order.append(idx)

        async def scenario() -> None:
            sequencer = ResultSequencer(provider)
            tasks = [asyncio.create_task(submit(sequencer, i)) for i in range(3)]
            await asyncio.sleep(0)
            for ticket in provider.submitted:
                provider.respond(ticket, [fist_hand])
            await asyncio.gather(*tasks)

        asyncio.run(scenario())
        assert order == [0, 1, 2]

    def test_skipped_frame_fails_without_misattribution(self, make_provider, make_hand) -> None:
        provider = make_provider(auto=False)
        second = [make_hand(handedness="second")]
        third = [make_hand(handedness="third")]

        async def scenario() -> list:
            sequencer = ResultSequencer(provider)
            tasks = [asyncio.create_task(sequencer.submit(_frame(i))) for i in range(3)]
            await asyncio.sleep(0)
            t1, t2, t3 = provider.submitted
            provider.respond(t2, second)  # provider never answers t1
            provider.respond(t3, third)
            return await asyncio.gather(*tasks, return_exceptions=True)

        first_result, second_result, third_result = asyncio.run(scenario())
        assert isinstance(first_result, FrameDroppedError)
        assert first_result.superseded_by == provider.submitted[1]
        assert second_result[0].handedness == "second"
        assert third_result[0].handedness == "third"

    def test_unknown_ticket_ignored(self, make_provider, fist_hand: Hand) -> None:
        provider = make_provider(auto=False)

        async def scenario() -> list[Hand]:
            sequencer = ResultSequencer(provider)
            task = asyncio.create_task(sequencer.submit(_frame(0)))
            await asyncio.sleep(0)
            provider.respond(provider.submitted[0] + 10_000, [])
            assert sequencer.pending_count == 1
            provider.respond(provider.submitted[0], [fist_hand])
            return await task

        assert asyncio.run(scenario()) == [fist_hand]

    def test_provider_rejection(self, make_provider) -> None:
        provider = make_provider(auto=False)
        provider.fail_next_submit = True

        async def scenario() -> int:
            sequencer = ResultSequencer(provider)
            with pytest.raises(FrameProcessingError, match="rejected"):
                await sequencer.submit(_frame(0))
            return sequencer.pending_count

        assert asyncio.run(scenario()) == 0

    def test_timeout(self, make_provider) -> None:
        provider = make_provider(auto=False)

        async def scenario() -> int:
            sequencer = ResultSequencer(provider, timeout_ms=20)
            with pytest.raises(FrameProcessingError, match="No result"):
                await sequencer.submit(_frame(0))
            return sequencer.pending_count

        assert asyncio.run(scenario()) == 0

    def test_clear_abandons_pending(self, make_provider) -> None:
        provider = make_provider(auto=False)

        async def scenario() -> tuple:
            sequencer = ResultSequencer(provider)
            task = asyncio.create_task(sequencer.submit(_frame(0)))
            await asyncio.sleep(0)
            sequencer.clear()
            result = await asyncio.gather(task, return_exceptions=True)
            return result[0], sequencer.pending_count

        error, pending = asyncio.run(scenario())
        assert isinstance(error, FrameProcessingError)
        assert pending == 0
