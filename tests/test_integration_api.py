from __future__ import annotations

import os

import pytest

from slbctl.listener_syncer import ListenerSyncer
from slbctl.slb_api import SlbApi

pytestmark = pytest.mark.integration


@pytest.fixture(scope="session")
def load_balancer_id() -> str:
    value = os.getenv("SLBCTL_TEST_LOAD_BALANCER_ID")
    if not value:
        pytest.skip("SLBCTL_TEST_LOAD_BALANCER_ID not set")
    return value


def test_read_listeners_round_trip(slb_api: SlbApi, load_balancer_id: str) -> None:
    syncer = ListenerSyncer(api=slb_api, load_balancer_id=load_balancer_id)
    current = syncer.read_listeners()

    assert [x.load_balancer_port for x in current] == sorted(x.load_balancer_port for x in current)
    # Declaring exactly what is there must plan nothing.
    assert syncer.plan(current).empty
