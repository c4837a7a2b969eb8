import asyncio

from skytrade_explorer.viewport.debounce import Debouncer


def test_only_the_last_value_in_a_burst_is_delivered():
    received = []

    async def callback(value):
        received.append(value)

    async def scenario():
        debouncer = Debouncer(callback, delay=0.01)
        for value in range(5):
            debouncer.trigger(value)
        assert debouncer.pending
        await debouncer.wait()
        assert not debouncer.pending

    asyncio.run(scenario())

    assert received == [4]


def test_cancel_drops_the_pending_call():
    received = []

    async def callback(value):
        received.append(value)

    async def scenario():
        debouncer = Debouncer(callback, delay=0.01)
        debouncer.trigger("a")
        debouncer.cancel()
        await asyncio.sleep(0.03)
        await debouncer.wait()

    asyncio.run(scenario())

    assert received == []


def test_failing_callback_is_logged_not_raised(caplog):
    async def callback(value):
        raise RuntimeError("boom")

    async def scenario():
        debouncer = Debouncer(callback, delay=0.0)
        debouncer.trigger(1)
        await debouncer.wait()

    asyncio.run(scenario())

    assert "Debounced call failed" in caplog.text
