"""
Pull a JSON object out of a model reply.

Models wrap JSON in markdown fences, leave trailing commas, or stop mid-object
when they hit the token limit. parse_ai_json tries, in order:
  1. the text between the first "{" and the last "}"
  2. the same with trailing commas and raw newlines removed
  3. the repaired text cut at the decode error and auto-closed
"""
import json
import re

from fluentify.core.errors import AIGenerationFailed

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def _repair(text: str) -> str:
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    return text.replace("\r", " ").replace("\n", " ")


def _auto_close(text: str) -> str:
    """Close any brackets and string left open at the end of *text*."""
    stack = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    if in_string:
        text += '"'
    text = text.rstrip().rstrip(",")
    return text + "".join(reversed(stack))


def parse_ai_json(text: str) -> dict:
    if not text or not text.strip():
        raise AIGenerationFailed("AI returned an empty response")

    clean = _strip_fences(text)
    start = clean.find("{")
    if start == -1:
        print(f"[AI] no JSON object in response: {text[:200]!r}", flush=True)
        raise AIGenerationFailed("No valid JSON found in AI response")

    end = clean.rfind("}")
    candidate = clean[start:end + 1] if end > start else clean[start:]

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    repaired = _repair(clean[start:])
    end = repaired.rfind("}")
    if end != -1:
        try:
            return json.loads(repaired[:end + 1])
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        print(f"[AI] JSON parse failed at pos={e.pos}, trying to auto-close", flush=True)
        truncated = repaired[:e.pos] if e.pos else repaired

    try:
        return json.loads(_auto_close(truncated))
    except json.JSONDecodeError as e:
        print(f"[AI] could not repair JSON: {e.msg}; raw={text[:200]!r}", flush=True)
        raise AIGenerationFailed(f"Failed to parse JSON: {e.msg}")
