"""Cache key builders for SmartPOS entities.

Keys are ``<entity>:<id>`` or ``<entity>:list[:<params>]`` so that a whole
entity family can be dropped with one ``invalidate_prefix`` call.
"""

import json
from typing import Any, Mapping, Optional


def _params(filters: Any) -> str:
    # Sorted keys: equal filters must give equal keys
    return json.dumps(filters, sort_keys=True, separators=(",", ":"), default=str)


def _listing(entity: str, params: Optional[str] = None) -> str:
    return f"{entity}:list:{params}" if params else f"{entity}:list"


class CacheKeys:
    @staticmethod
    def user(user_id: int) -> str:
        return f"user:{user_id}"

    @staticmethod
    def product(product_id: int) -> str:
        return f"product:{product_id}"

    @staticmethod
    def products(filters: Mapping[str, Any]) -> str:
        return f"products:{_params(filters)}"

    @staticmethod
    def sales(store_id: int, date: str) -> str:
        return f"sales:{store_id}:{date}"

    @staticmethod
    def dashboard(user_id: int, store_id: int) -> str:
        return f"dashboard:{user_id}:{store_id}"

    @staticmethod
    def reports(report_type: str, params: Mapping[str, Any]) -> str:
        return f"reports:{report_type}:{_params(params)}"

    @staticmethod
    def settings(store_id: int) -> str:
        return f"settings:{store_id}"

    @staticmethod
    def inventory(product_id: int) -> str:
        return f"inventory:{product_id}"

    # Sales
    @staticmethod
    def sale(sale_id: int) -> str:
        return f"sale:{sale_id}"

    @staticmethod
    def sales_list(params: Optional[str] = None) -> str:
        return _listing("sales", params)

    @staticmethod
    def sales_stats() -> str:
        return "sales:stats"

    # Returns
    @staticmethod
    def return_(return_id: int) -> str:
        return f"return:{return_id}"

    @staticmethod
    def returns_list(params: Optional[str] = None) -> str:
        return _listing("returns", params)

    @staticmethod
    def returns_stats() -> str:
        return "returns:stats"

    # Inventory
    @staticmethod
    def inventory_item(item_id: int) -> str:
        return f"inventory:{item_id}"

    @staticmethod
    def inventory_list(params: Optional[str] = None) -> str:
        return _listing("inventory", params)

    @staticmethod
    def inventory_stats() -> str:
        return "inventory:stats"

    # Customers
    @staticmethod
    def customer(customer_id: int) -> str:
        return f"customer:{customer_id}"

    @staticmethod
    def customers_list(params: Optional[str] = None) -> str:
        return _listing("customers", params)

    @staticmethod
    def customers_stats() -> str:
        return "customers:stats"
