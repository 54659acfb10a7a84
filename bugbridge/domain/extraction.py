"""Best-effort field recovery from tracker tasks.

Every field is resolved by an ordered chain of named strategies. A strategy
returns a value or ``None``; the first value wins. Nothing in this module
raises for malformed input, so a bad task degrades to empty fields instead of
failing a report.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from bugbridge.domain.models import NormalizedIssueRecord, RemoteIssue
from bugbridge.domain.priority import priority_label

SCREENSHOT_NOT_FOUND = "No Screenshot found"

Strategy = Callable[[RemoteIssue], "str | None"]

URL_IN_TEXT = re.compile(r"(?:https?://|www\.)[^\s)\]}'\"<>]+", re.IGNORECASE)
_SCREENSHOT_LINE = re.compile(r"Screenshot:\s*(https?://\S+)", re.IGNORECASE)
_IMAGE_URL = re.compile(
    r"https?://\S+?\.(?:jpg|jpeg|png|gif|webp|bmp)(?:\?[^\s)\]}'\"<>]*)?(?=[\s)\]}'\"<>]|$)",
    re.IGNORECASE,
)
_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_DOMAIN_LIKE = re.compile(r"^(?:www\.)?[a-z0-9-]+(?:\.[a-z0-9-]+)+(?:[:/?#].*)?$", re.IGNORECASE)
_HOST = re.compile(r"^[\w.-]+$")

_ENV_LABELS = {
    "os": "OS",
    "browser": "Browser",
    "resolution": "Resolution",
    "browser_window": r"Browser\s*Window",
}

SITE_URL_FIELDS = (
    "url",
    "site_url",
    "site",
    "page_url",
    "page",
    "site_page",
    "URL",
    "page-url",
    "site-page",
)
NESTED_SITE_URL_FIELDS = ("url", "page_url", "site_url")
SCREENSHOT_FIELDS = ("screenshot_url", "screenshot", "image_url", "attachment_url")
OS_FIELDS = ("requester_os", "os", "operating_system")
BROWSER_FIELDS = ("requester_browser", "browser")
RESOLUTION_FIELDS = ("requester_resolution", "resolution", "screen_resolution")
BROWSER_SIZE_FIELDS = (
    "requester_browser_size",
    "browser_size",
    "viewport",
    "window_size",
    "browser_window_size",
)


def first_of(strategies: Iterable[Strategy], issue: RemoteIssue) -> str | None:
    for strategy in strategies:
        value = strategy(issue)
        if value is not None:
            return value
    return None


def stringify(value: Any) -> str:
    """Render a field value as display text.

    Lists are joined with ``", "``, mappings are JSON-encoded.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value).strip()


# --- URL candidates ---


def clean_url_candidate(value: Any) -> str | None:
    """Normalise a URL-ish value, returning it only if it parses as an http(s) URL."""
    if not isinstance(value, str):
        return None
    text = re.sub(r"\s+", "", value)
    if not text or text.lower() in ("null", "undefined", "none"):
        return None
    text = text.strip("'\"<>()[]{}")
    if text.endswith("..."):
        text = text[:-3]
    text = text.rstrip(".,;:!?")
    if len(text) < 5:
        return None

    if not _SCHEME.match(text):
        if text.startswith("//"):
            text = "https:" + text
        elif text.startswith("/") or _DOMAIN_LIKE.match(text):
            text = "https://" + text.lstrip("/")
        else:
            return None

    try:
        parts = urlsplit(text)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    host = parts.hostname or ""
    if parts.scheme.lower() not in ("http", "https") or not host or not _HOST.match(host):
        return None
    return text


def urls_in_text(text: str | None) -> list[str]:
    if not text:
        return []
    return URL_IN_TEXT.findall(text)


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from _iter_strings(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _iter_strings(v)


def _site_url_candidates(issue: RemoteIssue, deep_scan: bool) -> Iterator[Any]:
    for name in SITE_URL_FIELDS:
        yield issue.get(name)
    attributes = issue.get("attributes")
    if isinstance(attributes, dict):
        for name in NESTED_SITE_URL_FIELDS:
            yield attributes.get(name)
    yield from urls_in_text(issue.description)
    if deep_scan:
        for text in _iter_strings(issue.model_dump()):
            yield from urls_in_text(text)


def extract_site_url(issue: RemoteIssue, deep_scan: bool = False) -> str:
    for candidate in _site_url_candidates(issue, deep_scan):
        cleaned = clean_url_candidate(candidate)
        if cleaned:
            return cleaned
    return ""


# --- environment fields ---


def parse_labelled_line(description: str | None, label_pattern: str) -> str | None:
    """Return the value of a ``Label: value`` line, trimmed to end of line."""
    if not description:
        return None
    match = re.search(
        rf"^[ \t]*{label_pattern}[ \t]*:[ \t]*(.+)$",
        description,
        re.IGNORECASE | re.MULTILINE,
    )
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def direct_field(*names: str) -> Strategy:
    def _strategy(issue: RemoteIssue) -> str | None:
        for name in names:
            value = stringify(issue.get(name))
            if value:
                return value
        return None

    _strategy.__name__ = f"direct_field({', '.join(names)})"
    return _strategy


def description_label(key: str) -> Strategy:
    pattern = _ENV_LABELS[key]

    def _strategy(issue: RemoteIssue) -> str | None:
        return parse_labelled_line(issue.description, pattern)

    _strategy.__name__ = f"description_label({key})"
    return _strategy


OS_CHAIN: tuple[Strategy, ...] = (direct_field(*OS_FIELDS), description_label("os"))
BROWSER_CHAIN: tuple[Strategy, ...] = (direct_field(*BROWSER_FIELDS), description_label("browser"))
RESOLUTION_CHAIN: tuple[Strategy, ...] = (
    direct_field(*RESOLUTION_FIELDS),
    description_label("resolution"),
)
BROWSER_SIZE_CHAIN: tuple[Strategy, ...] = (
    direct_field(*BROWSER_SIZE_FIELDS),
    description_label("browser_window"),
)


@dataclass(frozen=True)
class Environment:
    os: str = ""
    browser: str = ""
    resolution: str = ""
    browser_size: str = ""


def extract_environment(issue: RemoteIssue) -> Environment:
    resolution = first_of(RESOLUTION_CHAIN, issue) or ""
    browser_size = first_of(BROWSER_SIZE_CHAIN, issue) or ""
    return Environment(
        os=first_of(OS_CHAIN, issue) or "",
        browser=first_of(BROWSER_CHAIN, issue) or "",
        resolution=resolution or browser_size,
        browser_size=browser_size or resolution,
    )


# --- screenshot ---


def _screenshot_field(issue: RemoteIssue) -> str | None:
    for name in SCREENSHOT_FIELDS:
        value = issue.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _image_attachment(issue: RemoteIssue) -> str | None:
    for att in issue.attachments:
        if att.url and (att.content_type or "").lower().startswith("image/"):
            return att.url
    return None


def _any_attachment(issue: RemoteIssue) -> str | None:
    for att in issue.attachments:
        if att.url:
            return att.url
    return None


def _screenshot_line(issue: RemoteIssue) -> str | None:
    match = _SCREENSHOT_LINE.search(issue.description or "")
    return match.group(1).strip() if match else None


def _image_url_in_description(issue: RemoteIssue) -> str | None:
    match = _IMAGE_URL.search(issue.description or "")
    return match.group(0).strip() if match else None


SCREENSHOT_CHAIN: tuple[Strategy, ...] = (
    _screenshot_field,
    _image_attachment,
    _any_attachment,
    _screenshot_line,
    _image_url_in_description,
)


def extract_screenshot(issue: RemoteIssue) -> str:
    return first_of(SCREENSHOT_CHAIN, issue) or SCREENSHOT_NOT_FOUND


# --- remaining report fields ---


def extract_priority_label(issue: RemoteIssue) -> str:
    return priority_label(issue.priority_id, issue.priority)


def extract_bug_type(status: str) -> str:
    lowered = status.lower()
    if lowered == "suggestion":
        return "Suggestion"
    if lowered == "qa team":
        return "Bug"
    return status


def extract_tags(issue: RemoteIssue) -> str:
    if issue.tag_names:
        return ", ".join(issue.tag_names)
    tags = issue.tags
    if isinstance(tags, list):
        names = [t.get("name") if isinstance(t, dict) else t for t in tags]
        return ", ".join(str(n) for n in names if n)
    return stringify(tags)


def extract_reporter(issue: RemoteIssue) -> str:
    if issue.requester_email:
        return issue.requester_email.strip()
    for key in ("requester", "reporter"):
        person = issue.get(key)
        if isinstance(person, dict):
            value = person.get("email") or person.get("name")
            if value:
                return str(value).strip()
        elif isinstance(person, str) and person.strip():
            return person.strip()
    return ""


def normalize_issue(issue: RemoteIssue, bug_id: int, deep_scan: bool = False) -> NormalizedIssueRecord:
    """Project an enriched task onto the report record with display id ``bug_id``."""
    status = issue.status_text
    env = extract_environment(issue)
    return NormalizedIssueRecord(
        bug_id=bug_id,
        bug_type=extract_bug_type(status),
        severity=extract_priority_label(issue),
        status=status,
        priority_id=issue.priority_id,
        description=issue.description or "",
        tags=extract_tags(issue),
        site_url=extract_site_url(issue, deep_scan),
        os=env.os,
        browser=env.browser,
        browser_size=env.browser_size,
        resolution=env.resolution,
        screenshot=extract_screenshot(issue),
        reporter=extract_reporter(issue),
    )
