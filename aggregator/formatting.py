"""Output renderers for query results.

text: plain integers for total/group, one "user count" line per user.
json: one compact object per query, e.g.

    {"total":1}
    {"group":"trip","total":3}
    {"group":"trip","window":"last_60_seconds","totals":{"alice":1,"bob":1}}
"""

import json

from aggregator.engine import GroupCount, TotalCount, UserBreakdown

TEXT = "text"
JSON = "json"
OUTPUT_FORMATS = (TEXT, JSON)


def render_text(result, window_seconds: int) -> list[str]:
    if isinstance(result, UserBreakdown):
        # Empty breakdown prints nothing.
        return [f"{user} {count}" for user, count in result.totals.items()]
    return [str(result.total)]


def render_json(result, window_seconds: int) -> list[str]:
    return [json.dumps(to_payload(result, window_seconds), separators=(",", ":"))]


def to_payload(result, window_seconds: int) -> dict:
    if isinstance(result, TotalCount):
        return {"total": result.total}
    if isinstance(result, GroupCount):
        return {"group": result.group, "total": result.total}
    if isinstance(result, UserBreakdown):
        return {
            "group": result.group,
            "window": f"last_{window_seconds}_seconds",
            "totals": dict(result.totals),
        }
    raise TypeError(f"Cannot render {type(result).__name__}")


RENDERERS = {
    TEXT: render_text,
    JSON: render_json,
}
