import asyncio

from llmloop.utilities.async_helpers import get_create_event_loop, synchronize


class TestSynchronize:
    def test_runs_coroutine(self):
        async def add(a, b):
            await asyncio.sleep(0)
            return a + b

        assert synchronize(add, 1, b=2) == 3

    def test_get_create_event_loop(self):
        assert isinstance(get_create_event_loop(), asyncio.AbstractEventLoop)
