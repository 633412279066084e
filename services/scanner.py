"""Bluetooth LE discovery of registered RuuviTags."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Protocol

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from models.records import RawAdvertisement
from services.decoder import RUUVI_MANUFACTURER_ID

logger = logging.getLogger(__name__)


class ScanError(RuntimeError):
    """The adapter or BLE stack failed during a scan pass."""


class Scanner(Protocol):
    async def scan(self, duration: float) -> List[RawAdvertisement]:
        ...


def _log_discovery_event(device: BLEDevice, advertisement: AdvertisementData) -> None:
    logger.debug("Discovery event %s rssi=%s", device.address, advertisement.rssi)


class BeaconScanner:
    """Active BLE scan returning Ruuvi payloads for registered addresses only."""

    def __init__(self, registered_addresses: Iterable[str]) -> None:
        self._registered = frozenset(address.upper() for address in registered_addresses)

    async def scan(self, duration: float) -> List[RawAdvertisement]:
        try:
            async with BleakScanner(
                detection_callback=_log_discovery_event,
                scanning_mode="active",
            ) as scanner:
                await asyncio.sleep(duration)
                discovered = dict(scanner.discovered_devices_and_advertisement_data)
        except Exception as exc:
            # Backend error types vary by platform; any of them fails this pass only.
            raise ScanError(f"BLE scan failed: {exc}") from exc

        results: List[RawAdvertisement] = []
        for device, advertisement in discovered.values():
            address = device.address.upper()
            if address not in self._registered:
                continue
            payload = advertisement.manufacturer_data.get(RUUVI_MANUFACTURER_ID)
            if payload is None:
                logger.debug("No Ruuvi manufacturer data", extra={"sensor_mac": address})
                continue
            results.append(RawAdvertisement(address=address, payload=bytes(payload)))
        return results
