from __future__ import annotations

from dataclasses import replace

from slbctl.listener_diff import diff_listeners, index_by_fingerprint
from slbctl.models import Flag, Listener, Protocol, Scheduler
from slbctl.normalizer import normalize


def _http(port: int, instance_port: int, **overrides: object) -> Listener:
    base = Listener(
        load_balancer_port=port,
        instance_port=instance_port,
        protocol=Protocol.HTTP,
        bandwidth=-1,
        scheduler=Scheduler.WEIGHTED_ROUND_ROBIN,
        sticky_session=Flag.OFF,
        health_check=Flag.OFF,
    )
    return replace(base, **overrides)


def _tcp(port: int, instance_port: int) -> Listener:
    return Listener(load_balancer_port=port, instance_port=instance_port, protocol=Protocol.TCP, bandwidth=-1)


def test_diff_is_set_difference_by_fingerprint() -> None:
    keep = _http(80, 8080)
    gone = _tcp(22, 22)
    new = _tcp(3306, 3306)

    diff = diff_listeners([keep, new], [keep, gone])

    assert diff.to_remove == [gone]
    assert diff.to_add == [new]
    assert diff.drifted == []
    assert not diff.empty


def test_diff_of_identical_sets_is_empty() -> None:
    listeners = [_http(80, 8080), _tcp(22, 22)]
    diff = diff_listeners(listeners, list(listeners))
    assert diff.empty
    assert diff.to_json() == {"remove": [], "add": [], "drifted": []}


def test_port_reuse_with_other_backend_is_remove_and_add() -> None:
    old = _http(80, 8080)
    new = _http(80, 9090)
    diff = diff_listeners([new], [old])
    assert diff.to_remove == [old]
    assert diff.to_add == [new]


def test_remote_defaults_are_not_drift() -> None:
    desired = _http(80, 8080)
    current = replace(desired, healthy_threshold=3, health_check_interval=2)
    diff = diff_listeners([desired], [current])
    assert diff.empty
    assert diff.drifted == []


def test_changed_non_identity_field_is_reported_but_kept() -> None:
    desired = _http(80, 8080, scheduler=Scheduler.ROUND_ROBIN)
    current = _http(80, 8080)

    diff = diff_listeners([desired], [current])

    assert diff.empty
    assert diff.drifted == [desired]


def test_recreate_changed_removes_and_adds_drifted_listener() -> None:
    desired = _http(80, 8080, scheduler=Scheduler.ROUND_ROBIN)
    current = _http(80, 8080)

    diff = diff_listeners([desired], [current], recreate_changed=True)

    assert diff.to_remove == [current]
    assert diff.to_add == [desired]
    assert diff.drifted == [desired]


def test_index_keeps_first_duplicate() -> None:
    a = _http(80, 8080)
    b = _http(80, 8080, scheduler=Scheduler.ROUND_ROBIN)
    index = index_by_fingerprint([a, b])
    assert list(index.values()) == [a]


def test_http_code_order_is_not_drift() -> None:
    desired = Listener.from_config({
        "load_balancer_port": 80,
        "instance_port": 8080,
        "protocol": "http",
        "bandwidth": -1,
        "health_check_http_code": "http_3xx,http_2xx",
    })
    current = normalize(
        {
            "ListenerPort": 80,
            "BackendServerPort": 8080,
            "Bandwidth": -1,
            "Scheduler": "wrr",
            "StickySession": "off",
            "HealthCheck": "off",
            "HealthCheckHttpCode": "http_2xx,http_3xx",
        },
        Protocol.HTTP,
    )

    diff = diff_listeners([desired], [current], recreate_changed=True)

    assert diff.drifted == []
    assert diff.empty
