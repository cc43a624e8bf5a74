"""Shared test data builders and a simulated Shopify orders endpoint."""

from typing import Any, Dict, List, Optional, Sequence, Union

SHOP = "test-shop"
ACCESS_TOKEN = "shpat_test_secret_token"
ORDERS_URL = f"https://{SHOP}.myshopify.com/admin/api/2023-10/orders.json"


def make_order(
    number: str = "#1001",
    city: Optional[str] = "Bengaluru",
    cancelled_at: Optional[str] = None,
    fulfillment_status: Optional[str] = None,
    line_items: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a Shopify-shaped order document."""
    order: Dict[str, Any] = {
        "id": int(number.lstrip("#") or 0),
        "name": number,
        "cancelled_at": cancelled_at,
        "fulfillment_status": fulfillment_status,
        "financial_status": "paid",
        "total_price": "1499.00",
        "phone": None,
        "shipping_address": {
            "name": "Asha Rao",
            "address1": "12 MG Road",
            "address2": None,
            "city": city,
            "province": "Karnataka",
            "zip": "560001",
            "country": "India",
            "phone": "+91 90000 00000",
        },
        "customer": {"phone": None, "default_address": None},
        "line_items": line_items
        if line_items is not None
        else [{"title": "Filter Coffee", "quantity": 2, "fulfillable_quantity": 2}],
    }
    order.update(extra)
    return order


def page_of(prefix: int, count: int) -> List[Dict[str, Any]]:
    """``count`` minimal orders with ids unique per ``prefix``."""
    return [
        {"id": prefix * 100 + i, "name": f"#{prefix * 100 + i}"} for i in range(count)
    ]


class FakeShop:
    """Simulated cursor-paginated orders endpoint for requests_mock.

    ``failures`` is a queue of statuses (or ``(status, headers)`` pairs)
    served before any page, one per request.
    """

    def __init__(
        self,
        pages: Sequence[List[Dict[str, Any]]],
        failures: Sequence[Union[int, tuple]] = (),
    ):
        self.pages = list(pages)
        self.failures = list(failures)
        self.requests: List[Any] = []

    def __call__(self, request: Any, context: Any) -> Dict[str, Any]:
        self.requests.append(request)

        if self.failures:
            failure = self.failures.pop(0)
            status, headers = failure if isinstance(failure, tuple) else (failure, {})
            context.status_code = status
            context.headers.update(headers)
            return {"errors": f"simulated {status}"}

        token = request.qs.get("page_info", ["p0"])[0]
        index = int(token[1:])
        links = []
        if index > 0:
            prev_url = f"{ORDERS_URL}?limit=250&page_info=p{index - 1}"
            links.append(f'<{prev_url}>; rel="previous"')
        if index + 1 < len(self.pages):
            next_url = f"{ORDERS_URL}?limit=250&page_info=p{index + 1}"
            links.append(f'<{next_url}>; rel="next"')
        if links:
            context.headers["Link"] = ", ".join(links)

        return {"orders": self.pages[index] if self.pages else []}
