from __future__ import annotations

import json
from typing import Any

from siteinsight.errors import GenerationFailure


def parse_json_text(text: str, *, provider: str) -> Any:
    """Parse model output into JSON, trimming Markdown fences if needed."""
    cleaned = strip_code_block(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        preview = cleaned.strip().replace("\n", " ")
        if len(preview) > 240:
            preview = preview[:237] + "..."
        raise GenerationFailure(
            f"{provider} returned invalid JSON: {preview}", payload={"text": text}
        ) from exc


def strip_code_block(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.splitlines()
    body: list[str] = []
    started = False
    for line in lines:
        fence = line.strip().startswith("```")
        if not started:
            if fence:
                started = True
            continue
        if fence:
            break
        body.append(line)
    if not body:
        return stripped
    return "\n".join(body).strip()
