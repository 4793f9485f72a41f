import pytest

from gift_checkout_api.app.core.exceptions import CheckoutError
from gift_checkout_api.app.services.session_registry import SessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_idle_sessions_expire_after_ttl(gateway, customer):
    clock = FakeClock()
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    stale_id = registry.create(gateway, 15000, "Jogo de panelas", customer)

    clock.now += 45
    fresh_id = registry.create(gateway, 8000, "Cafeteira", customer)
    clock.now += 30

    assert await registry.evict_expired() == 1
    assert len(registry) == 1
    assert registry.get(fresh_id).amount_cents == 8000
    with pytest.raises(CheckoutError) as exc_info:
        registry.get(stale_id)
    assert exc_info.value.code == "SESSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_access_keeps_session_alive(gateway, customer):
    clock = FakeClock()
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session_id = registry.create(gateway, 15000, "Jogo de panelas", customer)

    clock.now += 50
    registry.snapshot(session_id)
    clock.now += 50

    assert await registry.evict_expired() == 0
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_polling_sessions_are_not_evicted(gateway, customer):
    clock = FakeClock()
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session_id = registry.create(gateway, 15000, "Jogo de panelas", customer, poll_interval=10, poll_timeout=60)
    await registry.get(session_id).generate_pix_payment()

    clock.now += 120

    assert await registry.evict_expired() == 0
    await registry.close_all()
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_no_ttl_keeps_every_session(gateway, customer):
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    registry.create(gateway, 15000, "Jogo de panelas", customer)

    clock.now += 10 ** 6

    assert await registry.evict_expired() == 0
    assert len(registry) == 1
