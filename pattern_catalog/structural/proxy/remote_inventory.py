"""
Remote proxy.

``RemoteInventoryProxy`` looks like a local ``InventoryService`` but turns
each call into a JSON request to the warehouse API, and maps transport
problems to ``ExternalServiceException``.
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from ...exceptions import ExternalServiceException, ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class InventoryService(ABC):
    @abstractmethod
    def check_stock(self, sku: str) -> int: ...

    @abstractmethod
    def reserve(self, sku: str, quantity: int) -> str: ...

    @abstractmethod
    def release(self, reservation_id: str) -> None: ...


class RemoteInventoryProxy(InventoryService):
    def __init__(self, base_url: str, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(base_url=base_url, transport=transport, timeout=5.0)

    def check_stock(self, sku: str) -> int:
        return self._call("GET", f"/stock/{sku}")["available"]

    def reserve(self, sku: str, quantity: int) -> str:
        return self._call("POST", "/reservations", {"sku": sku, "quantity": quantity})["reservation_id"]

    def release(self, reservation_id: str) -> None:
        self._call("DELETE", f"/reservations/{reservation_id}")

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, path: str, payload: Optional[Dict] = None) -> Dict:
        logger.debug("Remote call", method=method, path=path)
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.TransportError as e:
            raise ExternalServiceException("inventory", str(e)) from e

        if response.status_code == 404:
            raise ResourceNotFoundException("inventory item", path.rsplit("/", 1)[-1])
        if response.status_code == 409:
            raise ValidationException("quantity", payload, response.json().get("error", "conflict"))
        if response.is_error:
            raise ExternalServiceException("inventory", f"HTTP {response.status_code}")
        return response.json() if response.content else {}


def warehouse_transport(stock: Dict[str, int], offline: bool = False) -> httpx.MockTransport:
    """Fake warehouse API keeping stock and reservations in memory."""
    reservations: Dict[str, Dict] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if offline:
            raise httpx.ConnectError("warehouse unreachable", request=request)
        parts = request.url.path.strip("/").split("/")
        if parts[0] == "stock" and request.method == "GET":
            if parts[1] not in stock:
                return httpx.Response(404, json={"error": "unknown sku"})
            return httpx.Response(200, json={"sku": parts[1], "available": stock[parts[1]]})
        if parts == ["reservations"] and request.method == "POST":
            body = json.loads(request.content)
            if stock.get(body["sku"], 0) < body["quantity"]:
                return httpx.Response(409, json={"error": "insufficient stock"})
            stock[body["sku"]] -= body["quantity"]
            reservation_id = f"res_{len(reservations) + 1}"
            reservations[reservation_id] = body
            return httpx.Response(201, json={"reservation_id": reservation_id})
        if parts[0] == "reservations" and request.method == "DELETE":
            reservation = reservations.pop(parts[1], None)
            if reservation is None:
                return httpx.Response(404, json={"error": "unknown reservation"})
            stock[reservation["sku"]] += reservation["quantity"]
            return httpx.Response(204)
        return httpx.Response(405)

    return httpx.MockTransport(handler)


@demo(
    "proxy.remote-inventory",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="Local-looking inventory calls over HTTP",
)
def run_demo() -> None:
    inventory = RemoteInventoryProxy("https://warehouse.example.com", warehouse_transport({"lamp": 4, "desk": 1}))
    print(f"lamp in stock: {inventory.check_stock('lamp')}")
    reservation = inventory.reserve("lamp", 3)
    print(f"reserved 3 lamps as {reservation}; left: {inventory.check_stock('lamp')}")
    inventory.release(reservation)
    print(f"released; left: {inventory.check_stock('lamp')}")

    for action in (lambda: inventory.reserve("desk", 2), lambda: inventory.check_stock("sofa")):
        try:
            action()
        except (ValidationException, ResourceNotFoundException) as e:
            print(f"Rejected: {e.message}")

    offline = RemoteInventoryProxy("https://warehouse.example.com", warehouse_transport({}, offline=True))
    try:
        offline.check_stock("lamp")
    except ExternalServiceException as e:
        print(f"Offline: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
