from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from guardescrow.clock import Clock
from guardescrow.enums import Action
from guardescrow.keys import Keypair


class EscrowApiError(RuntimeError):
    def __init__(self, status_code: int, payload: dict[str, Any]) -> None:
        self.status_code = status_code
        self.error = payload.get("error", "HTTPError")
        self.code = payload.get("code")
        self.message = payload.get("message", "")
        super().__init__(f"{status_code} {self.error}: {self.message}")


@dataclass
class EscrowClient:
    base_url: str
    keypair: Keypair | None = None
    timeout: float = 10.0
    clock: Clock | None = None
    transport: httpx.AsyncBaseTransport | None = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.request(method, path, json=json)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
            raise EscrowApiError(response.status_code, payload)
        return response.json()

    async def _signed_post(self, action: Action, path: str, escrow: str = "", body: dict[str, Any] | None = None) -> dict[str, Any]:
        if self.keypair is None:
            raise ValueError(f"A keypair is required to {action.value}")
        timestamp = None if self.clock is None else self.clock.now()
        request = self.keypair.sign_request(action.value, escrow=escrow, body=body, timestamp=timestamp)
        return await self._request("POST", path, json=request.to_payload())

    async def create_escrow(
        self,
        seller: str,
        amount: int,
        timeout_period: int,
        arbiter: str | None = None,
    ) -> dict[str, Any]:
        body = {"seller": seller, "amount": amount, "timeout_period": timeout_period, "arbiter": arbiter}
        return await self._signed_post(Action.CREATE, "/escrows", body=body)

    async def fund_escrow(self, address: str) -> dict[str, Any]:
        return await self._signed_post(Action.FUND, f"/escrows/{address}/fund", escrow=address)

    async def release_to_seller(self, address: str) -> dict[str, Any]:
        return await self._signed_post(Action.RELEASE, f"/escrows/{address}/release", escrow=address)

    async def refund_to_buyer(self, address: str) -> dict[str, Any]:
        return await self._signed_post(Action.REFUND, f"/escrows/{address}/refund", escrow=address)

    async def cancel_escrow(self, address: str) -> dict[str, Any]:
        return await self._signed_post(Action.CANCEL, f"/escrows/{address}/cancel", escrow=address)

    async def get_escrow_state(self, address: str) -> dict[str, Any]:
        return await self._request("GET", f"/escrows/{address}")

    async def get_balance(self, address: str) -> int:
        data = await self._request("GET", f"/accounts/{address}")
        return int(data["balance"])

    async def airdrop(self, amount: int, address: str | None = None) -> int:
        if address is None and self.keypair is None:
            raise ValueError("An address or keypair is required to airdrop")
        target = address or self.keypair.public_key
        data = await self._request("POST", f"/accounts/{target}/airdrop", json={"amount": amount})
        return int(data["balance"])
