"""
Recent codes for the sidebar.

Newest first, capped; kept in memory (the Streamlit app stores one per session).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from app.models.schemas import HistoryEntry, ParsedPromocode, PromocodeInput


class CodeHistory:
    def __init__(self, limit: int = 50):
        self.limit = limit
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def _push(self, entry: HistoryEntry) -> HistoryEntry:
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        return entry

    def add_generated(self, code: str, inputs: PromocodeInput) -> HistoryEntry:
        price = inputs.effective_price()
        return self._push(HistoryEntry(
            id=uuid.uuid4().hex,
            code=code,
            timestamp=datetime.now(timezone.utc),
            inputs={
                "brand": inputs.brand.name if inputs.brand else None,
                "product": inputs.product.name if inputs.product else None,
                "initial_offer": f"{inputs.initial_length:g}{inputs.initial_period} "
                                 f"{inputs.discount_amount:g}{inputs.discount_type}",
                "renewal_type": inputs.renewal_type,
                "campaign_text": inputs.campaign_text,
                "code_type": inputs.code_type,
                "renewal_plan": f"{inputs.renewal_term}{price:g}",
            },
            is_valid=True,
        ))

    def add_parsed(self, result: ParsedPromocode) -> HistoryEntry:
        return self._push(HistoryEntry(
            id=uuid.uuid4().hex,
            code=result.original_code or "",
            timestamp=datetime.now(timezone.utc),
            is_valid=result.is_valid,
            summary=result.summary or result.error,
        ))

    def recent(self, limit: int = 10) -> List[HistoryEntry]:
        return list(self._entries[:limit])

    def clear(self) -> None:
        self._entries.clear()
