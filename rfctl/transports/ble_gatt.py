"""BLE GATT transport for RF/IR bridges that accept raw payload writes."""

from __future__ import annotations

import asyncio
from typing import Any

from rfctl.core.errors import TransportConnectError, TransportSendError


class BLEGATTTransport:
    def __init__(
        self,
        mac: str,
        write_char_uuid: str,
        *,
        write_with_response: bool = True,
        timeout_s: float = 5.0,
    ) -> None:
        self.mac = mac
        self.write_char_uuid = write_char_uuid
        self.write_with_response = write_with_response
        self.timeout_s = timeout_s
        self._client: Any = None
        self._lock = asyncio.Lock()

    async def _connected_client(self) -> Any:
        if self._client is not None and self._client.is_connected:
            return self._client

        try:
            from bleak import BleakClient  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise TransportConnectError(
                "BLE transport requires 'bleak'. Install dependency and retry."
            ) from exc

        client = BleakClient(self.mac, timeout=self.timeout_s)
        try:
            await client.connect()
        except Exception as exc:
            raise TransportConnectError(f"BLE connect failed for {self.mac}: {exc}") from exc
        if not client.is_connected:
            raise TransportConnectError(f"BLE connect failed for {self.mac}")
        self._client = client
        return client

    async def send(self, payload: bytes) -> None:
        async with self._lock:
            client = await self._connected_client()
            try:
                await client.write_gatt_char(
                    self.write_char_uuid,
                    payload,
                    response=self.write_with_response,
                )
            except Exception as exc:
                raise TransportSendError(f"BLE GATT send failed: {exc}") from exc

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                try:
                    await self._client.disconnect()
                finally:
                    self._client = None
