"""Adapter exposing FastAPI requests as credential body/query mappings."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, cast
from urllib.parse import parse_qsl

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request

logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = "application/json"
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True, slots=True)
class InboundRequest:
    """Parsed request surface handed to strategies and verify callbacks."""

    body: Mapping[str, object] = field(default_factory=dict)
    query: Mapping[str, object] = field(default_factory=dict)
    raw: Request | None = None


async def build_inbound_request(request: Request) -> InboundRequest:
    """Parse body fields and query parameters from a Starlette request."""
    body = await _read_body_fields(request)
    query: dict[str, object] = dict(request.query_params)
    return InboundRequest(body=body, query=query, raw=request)


async def _read_body_fields(request: Request) -> dict[str, object]:
    content_type = _media_type(request.headers.get("content-type"))
    if content_type not in {_JSON_CONTENT_TYPE, _FORM_CONTENT_TYPE}:
        return {}

    raw_body = await request.body()
    if not raw_body:
        return {}
    text = raw_body.decode("utf-8", errors="replace")

    if content_type == _FORM_CONTENT_TYPE:
        return dict(parse_qsl(text, keep_blank_values=True))

    try:
        parsed = cast("object", json.loads(text))
    except ValueError:
        logger.debug("Ignoring malformed JSON request body")
        return {}
    if not isinstance(parsed, dict):
        logger.debug("Ignoring non-object JSON request body")
        return {}
    return cast("dict[str, object]", parsed)


def _media_type(header: str | None) -> str:
    if not header:
        return ""
    return header.split(";", 1)[0].strip().lower()
