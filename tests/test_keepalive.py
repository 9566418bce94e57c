"""Tests for the keep-alive pinger."""

import asyncio

from discord_announcer.api.keepalive import KeepAlivePinger


def test_pings_public_health_endpoint():
    pinger = KeepAlivePinger("announcer.onrender.com", interval=840)
    assert pinger.url == "https://announcer.onrender.com/api/health"


async def test_unreachable_host_reports_zero():
    pinger = KeepAlivePinger("127.0.0.1:1", interval=840, timeout=5)
    try:
        assert await pinger.ping() == 0
    finally:
        await pinger.stop()


async def test_start_and_stop():
    pinger = KeepAlivePinger("127.0.0.1:1", interval=840)
    pinger.start()
    await asyncio.sleep(0)

    await pinger.stop()

    assert pinger._task is None
