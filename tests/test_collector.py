from __future__ import annotations

import asyncio
import logging

from models.records import RawAdvertisement
from services.collector import Collector
from services.scanner import ScanError
from tests.fakes import REGISTERED_MAC, FakeClock, FakeScanner, format5_payload

_TAGS = {REGISTERED_MAC: "Sauna"}


def _collector(clock: FakeClock, scanner: FakeScanner, **overrides) -> Collector:
    options = dict(
        window_seconds=90.0,
        poll_interval_seconds=30.0,
        scan_duration_seconds=20.0,
    )
    options.update(overrides)
    return Collector(scanner=scanner, tags=_TAGS, clock=clock, sleep=clock.sleep, **options)


def _adv(payload: bytes, address: str = REGISTERED_MAC) -> RawAdvertisement:
    return RawAdvertisement(address=address, payload=payload)


def test_poll_loop_spaces_scans_by_poll_interval(clock: FakeClock) -> None:
    batches = [[_adv(format5_payload(temperature=t))] for t in (4000, 4100, 4200)]
    scanner = FakeScanner(clock, batches)

    measurements = asyncio.run(_collector(clock, scanner).collect_window())

    assert scanner.calls == [20.0, 20.0, 20.0]
    assert clock.sleeps == [10.0, 10.0, 10.0]
    assert clock.now == 90.0
    assert [r.temperature for r in measurements[REGISTERED_MAC]] == [20.0, 20.5, 21.0]


def test_sleep_is_clipped_to_remaining_window(clock: FakeClock) -> None:
    scanner = FakeScanner(clock, [[_adv(format5_payload())]])

    measurements = asyncio.run(_collector(clock, scanner, window_seconds=25.0).collect_window())

    assert scanner.calls == [20.0]
    assert clock.sleeps == [5.0]
    assert len(measurements[REGISTERED_MAC]) == 1


def test_no_sleep_when_scan_fills_poll_interval(clock: FakeClock) -> None:
    scanner = FakeScanner(clock)

    asyncio.run(
        _collector(clock, scanner, window_seconds=60.0, poll_interval_seconds=20.0).collect_window()
    )

    assert len(scanner.calls) == 3
    assert clock.sleeps == []


def test_scan_failure_does_not_abort_window(clock: FakeClock, caplog) -> None:
    batches = [ScanError("adapter gone"), [_adv(format5_payload())], []]
    scanner = FakeScanner(clock, batches)

    with caplog.at_level(logging.ERROR):
        measurements = asyncio.run(_collector(clock, scanner).collect_window())

    assert len(scanner.calls) == 3
    assert len(measurements[REGISTERED_MAC]) == 1
    assert any("Scan failed" in record.getMessage() for record in caplog.records)


def test_unregistered_and_rejected_payloads_are_dropped(clock: FakeClock) -> None:
    batch = [
        _adv(format5_payload(), address="11:22:33:44:55:66"),
        _adv(b"\x03" + b"\x00" * 23),
        _adv(b""),
        _adv(format5_payload(movement=7), address=REGISTERED_MAC.lower()),
    ]
    scanner = FakeScanner(clock, [batch])

    measurements = asyncio.run(_collector(clock, scanner, window_seconds=20.0).collect_window())

    assert list(measurements) == [REGISTERED_MAC]
    assert [r.movement_counter for r in measurements[REGISTERED_MAC]] == [7]


def test_window_without_data_returns_empty_map(clock: FakeClock) -> None:
    scanner = FakeScanner(clock)

    measurements = asyncio.run(_collector(clock, scanner).collect_window())

    assert measurements == {}


def test_after_scan_hook_runs_once_per_pass(clock: FakeClock) -> None:
    scanner = FakeScanner(clock)
    calls: list[float] = []

    collector = _collector(clock, scanner)
    collector._after_scan = lambda: calls.append(clock.now)
    asyncio.run(collector.collect_window())

    assert calls == [20.0, 50.0, 80.0]
