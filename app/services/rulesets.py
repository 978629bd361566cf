"""
Ruleset loading.

- default_ruleset(): the built-in codec configuration (values from rules/patterns.py).
- ruleset_from_record(record): an Airtable "Rulesets" row -> validated Ruleset.
- load_active_ruleset(client): newest active row, or the default if anything is off.

A broken row (bad JSON map, regex with the wrong number of groups) is rejected
here so encode/decode never see a half-valid configuration.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.models.schemas import Ruleset
from app.services.exceptions import AirtableError, RulesetError
from app.util.logger import get_logger
from rules.patterns import AIRTABLE_FIELDS, FREETEXT_MAX_LENGTH


def default_ruleset() -> Ruleset:
    return Ruleset(name="Default", version="default")


def _json_map(fields: Dict[str, Any], field_name: str) -> Optional[Dict[str, str]]:
    raw = fields.get(field_name)
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        value = raw
    else:
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise RulesetError(f"Invalid JSON map: {e}", field_name=field_name) from e
    if not isinstance(value, dict):
        raise RulesetError("Expected a JSON object", field_name=field_name)
    if not value:
        return None
    return {str(k).strip(): str(v) for k, v in value.items()}


def _max_length(fields: Dict[str, Any], field_name: str) -> int:
    raw = fields.get(field_name)
    if raw is None or raw == "":
        return FREETEXT_MAX_LENGTH
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise RulesetError(f"Not a number: {raw!r}", field_name=field_name) from e


def ruleset_from_record(record: Dict[str, Any]) -> Ruleset:
    """
    Build a Ruleset from one Airtable record ({"id": ..., "fields": {...}}).

    Missing fields keep their defaults; empty maps count as missing.

    Raises:
        RulesetError: a field can't be parsed or the result fails validation.
    """
    f = AIRTABLE_FIELDS["rulesets"]
    fields = record.get("fields") or {}

    values: Dict[str, Any] = {
        "id": record.get("id"),
        "name": fields.get(f["name"]),
        "version": str(fields[f["version"]]) if fields.get(f["version"]) is not None else None,
        "segments_order": fields.get(f["segments_order"]),
        "freetext_max_length": _max_length(fields, f["freetext_max_length"]),
    }
    if fields.get(f["separator"]):
        values["separator"] = fields[f["separator"]]
    if fields.get(f["casing"]):
        values["casing"] = fields[f["casing"]]
    if fields.get(f["initial_offer_regex"]):
        values["initial_offer_pattern"] = fields[f["initial_offer_regex"]]
    if fields.get(f["renewal_plan_regex"]):
        values["renewal_plan_pattern"] = fields[f["renewal_plan_regex"]]

    for key in ("period_map", "term_map", "price_type_map"):
        parsed = _json_map(fields, f[key])
        if parsed is not None:
            values[key] = parsed

    try:
        return Ruleset(**values)
    except PydanticValidationError as e:
        raise RulesetError(f"Invalid ruleset {record.get('id')}: {e}") from e


def load_active_ruleset(client=None, code_types=None) -> Ruleset:
    """
    Active ruleset from Airtable, falling back to `default_ruleset()`.

    `code_types` (CodeType list from the vocabulary table) replaces the allowed
    code-type tokens when given.
    """
    logger = get_logger()
    ruleset = default_ruleset()

    if client is not None:
        try:
            record = client.fetch_ruleset_record()
        except AirtableError as e:
            logger.error(f"Failed to load ruleset, using defaults: {e}")
            record = None

        if record is None:
            logger.warning("No active promocode ruleset found, using defaults")
        else:
            try:
                ruleset = ruleset_from_record(record)
                logger.info(f"Loaded ruleset {ruleset.name} v{ruleset.version}")
            except RulesetError as e:
                logger.error(f"Rejected ruleset record, using defaults: {e}")

    if code_types:
        active = [c.code for c in code_types if c.active]
        if active:
            ruleset = ruleset.model_copy(update={"code_type_set": frozenset(a.upper() for a in active)})

    return ruleset
