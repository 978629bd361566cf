"""
Airtable adapter (the spreadsheet-backed datastore).

- Wraps the REST list endpoint with httpx: query params, bearer auth, `offset` pagination.
- Keeps a small TTL cache per (table, options) so dropdown changes don't refetch everything.
- Maps raw records onto Brand / Product / RatePlan / CodeType models.

Nothing in here knows about promocode segments; the codec only ever sees the
Ruleset and the lookup functions built from what this returns.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from app.config import AppConfig
from app.models.schemas import Brand, CodeType, Product, RatePlan
from app.services.exceptions import AirtableError
from app.util.logger import get_logger
from rules.patterns import AIRTABLE_FIELDS, AIRTABLE_TABLES, CODE_TYPES

Record = Dict[str, Any]


def _to_float(v) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _text(v) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class AirtableClient:
    """
    Read-only client for one Airtable base.

    `http` can be any httpx.Client (tests pass one with a MockTransport).
    `clock` returns seconds and is only used for cache expiry.
    """

    def __init__(
        self,
        base_id: str,
        api_key: Optional[str],
        base_url: str = "https://api.airtable.com/v0",
        timeout: float = 10.0,
        cache_duration: float = 300.0,
        use_cache: bool = True,
        http: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_id = base_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.cache_duration = cache_duration
        self.use_cache = use_cache
        self._http = http or httpx.Client(timeout=timeout)
        self._clock = clock
        self._cache: Dict[str, Tuple[float, List[Record]]] = {}

    @classmethod
    def from_config(cls, config: AppConfig, http: Optional[httpx.Client] = None) -> "AirtableClient":
        if not config.airtable_enabled:
            raise AirtableError("Airtable base id and API key are not configured")
        return cls(
            base_id=config.airtable_base_id,
            api_key=config.airtable_api_key,
            base_url=config.airtable_base_url,
            timeout=config.request_timeout,
            cache_duration=config.cache_duration_seconds,
            use_cache=config.use_cache,
            http=http,
        )

    def close(self) -> None:
        self._http.close()

    # ---------- low level ----------

    def table_url(self, table: str) -> str:
        return f"{self.base_url}/{self.base_id}/{quote(table, safe='')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def build_params(options: Dict[str, Any], offset: Optional[str] = None) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if options.get("view"):
            params.append(("view", options["view"]))
        if options.get("max_records"):
            params.append(("maxRecords", str(options["max_records"])))
        if options.get("filter_by_formula"):
            params.append(("filterByFormula", options["filter_by_formula"]))
        for i, s in enumerate(options.get("sort") or []):
            params.append((f"sort[{i}][field]", s["field"]))
            params.append((f"sort[{i}][direction]", s.get("direction", "asc")))
        for f in options.get("fields") or []:
            params.append(("fields[]", f))
        if offset:
            params.append(("offset", offset))
        return params

    @staticmethod
    def _cache_key(table: str, options: Dict[str, Any]) -> str:
        return f"{table}_{json.dumps(options, sort_keys=True)}"

    def list_records(self, table: str, **options) -> List[Record]:
        """
        All records of `table` matching `options` (all pages).

        Options: view, max_records, filter_by_formula, sort=[{field, direction}], fields=[...]
        """
        logger = get_logger()
        key = self._cache_key(table, options)

        if self.use_cache and key in self._cache:
            stamp, records = self._cache[key]
            if self._clock() - stamp < self.cache_duration:
                logger.debug(f"Using cached data for {table}")
                return records

        records = self._fetch_all(table, options)
        if self.use_cache:
            self._cache[key] = (self._clock(), records)
        return records

    def _fetch_all(self, table: str, options: Dict[str, Any]) -> List[Record]:
        logger = get_logger()
        url = self.table_url(table)
        records: List[Record] = []
        offset: Optional[str] = None

        while True:
            logger.debug(f"Fetching {table} (offset={offset})")
            try:
                resp = self._http.get(url, params=self.build_params(options, offset), headers=self._headers())
            except httpx.HTTPError as e:
                logger.error(f"Failed to fetch {table}: {e}")
                raise AirtableError(f"Request failed: {e}", table=table) from e

            if resp.status_code >= 400:
                logger.error(f"Failed to fetch {table}: HTTP {resp.status_code}")
                raise AirtableError("HTTP error", table=table, status_code=resp.status_code)

            try:
                data = resp.json()
            except ValueError as e:
                raise AirtableError("Malformed response body", table=table) from e

            records.extend(data.get("records") or [])
            offset = data.get("offset")
            if not offset:
                break

        logger.info(f"Fetched {len(records)} records from {table}")
        return records

    def clear_cache(self, table: Optional[str] = None) -> None:
        if table is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k.startswith(f"{table}_")]:
            del self._cache[key]

    # ---------- typed fetchers ----------

    def fetch_brands(self) -> List[Brand]:
        f = AIRTABLE_FIELDS["brands"]
        records = self.list_records(AIRTABLE_TABLES["brands"], sort=[{"field": f["name"], "direction": "asc"}])
        return [
            Brand(
                id=r.get("id"),
                code=_text(r.get("fields", {}).get(f["code"])),
                name=_text(r.get("fields", {}).get(f["name"])),
                country=_text(r.get("fields", {}).get(f["country"])),
                braze_code=_text(r.get("fields", {}).get(f["braze_code"])),
            )
            for r in records
        ]

    def _products(self, filter_by_formula: Optional[str] = None) -> List[Product]:
        f = AIRTABLE_FIELDS["products"]
        options: Dict[str, Any] = {"sort": [{"field": f["name"], "direction": "asc"}]}
        if filter_by_formula:
            options["filter_by_formula"] = filter_by_formula
        records = self.list_records(AIRTABLE_TABLES["products"], **options)
        out = []
        for r in records:
            fields = r.get("fields", {})
            out.append(Product(
                id=r.get("id"),
                name=_text(fields.get(f["name"])),
                type=_text(fields.get(f["type"])),
                code=_text(fields.get(f["code"])),
                promocode_id=_text(fields.get(f["promocode_id"])),
                brand_ids=list(fields.get(f["brand"]) or []),
            ))
        return out

    def fetch_all_products(self) -> List[Product]:
        return self._products()

    def fetch_products_by_brand(self, brand_id: str) -> List[Product]:
        if not brand_id:
            return []
        f = AIRTABLE_FIELDS["products"]
        return self._products(f"FIND('{brand_id}', {{{f['brand']}}})")

    def fetch_rate_plans_by_product(self, product_id: str) -> List[RatePlan]:
        """Rate plans linked to a product, cheapest first (no price sorts as 0)."""
        if not product_id:
            return []
        f = AIRTABLE_FIELDS["rate_plans"]
        records = self.list_records(
            AIRTABLE_TABLES["rate_plans"],
            filter_by_formula=f"FIND('{product_id}', {{{f['product']}}})",
            sort=[{"field": f["name"], "direction": "asc"}],
        )
        plans = []
        for r in records:
            fields = r.get("fields", {})
            plans.append(RatePlan(
                id=r.get("id"),
                code=_text(fields.get(f["code"])),
                name=_text(fields.get(f["name"])),
                price=_to_float(fields.get(f["price"])),
                category=_text(fields.get(f["category"])),
                plan_id=_text(fields.get(f["plan_id"])),
                product_ids=list(fields.get(f["product"]) or []),
            ))
        plans.sort(key=lambda p: p.price or 0)
        return plans

    def fetch_ruleset_record(self) -> Optional[Record]:
        """Newest active "Promocode" ruleset record, or None when the base has none."""
        f = AIRTABLE_FIELDS["rulesets"]
        records = self.list_records(
            AIRTABLE_TABLES["rulesets"],
            filter_by_formula=f"AND({{{f['type']}}} = 'Promocode', {{{f['status']}}} = 'Active')",
            max_records=1,
            sort=[{"field": f["version"], "direction": "desc"}],
        )
        return records[0] if records else None

    def fetch_code_types(self) -> List[CodeType]:
        """Active code-type vocabulary; the built-in list if Airtable can't be read."""
        f = AIRTABLE_FIELDS["code_types"]
        try:
            records = self.list_records(
                AIRTABLE_TABLES["code_types"],
                filter_by_formula=f"{{{f['active']}}} = TRUE()",
            )
        except AirtableError as e:
            get_logger().warning(f"Using default code types: {e}")
            return [CodeType(code=c, label=c) for c in CODE_TYPES]

        out = []
        for r in records:
            fields = r.get("fields", {})
            code = _text(fields.get(f["code"]))
            if not code:
                continue
            out.append(CodeType(
                code=code.upper(),
                label=_text(fields.get(f["label"])) or code,
                active=bool(fields.get(f["active"], True)),
            ))
        return out
