from __future__ import annotations

from collections.abc import Callable, Iterable

from bugbridge.domain.enums import FilterBucket
from bugbridge.domain.models import FilterSelection, RemoteIssue

TASK_BOARD_STATUSES = frozenset(
    {"backlog", "qa team", "in progress", "done", "in-progress", "suggestion"}
)
ARCHIVE_MARKERS = ("archive", "closed")

BucketMatcher = Callable[[RemoteIssue], bool]


def matches_feedback(issue: RemoteIssue) -> bool:
    return issue.status_text.lower() == "feedback"


def matches_task_board(issue: RemoteIssue) -> bool:
    return issue.status_text.lower() in TASK_BOARD_STATUSES


def archive_matcher(archive_status_id: int | None) -> BucketMatcher:
    """Build the archive rule; the numeric status id check is skipped when unset."""

    def _matches(issue: RemoteIssue) -> bool:
        status = issue.status_text.lower()
        if any(marker in status for marker in ARCHIVE_MARKERS):
            return True
        if archive_status_id is None or issue.status_id is None:
            return False
        try:
            return int(str(issue.status_id).strip()) == archive_status_id
        except ValueError:
            return False

    return _matches


def matchers_for(
    selection: FilterSelection, archive_status_id: int | None
) -> list[BucketMatcher]:
    table: dict[FilterBucket, BucketMatcher] = {
        FilterBucket.feedback: matches_feedback,
        FilterBucket.task_board: matches_task_board,
        FilterBucket.archive: archive_matcher(archive_status_id),
    }
    return [table[bucket] for bucket in selection.enabled]


def select_and_dedupe(
    issues: Iterable[RemoteIssue],
    selection: FilterSelection,
    archive_status_id: int | None = 5,
) -> tuple[list[RemoteIssue], list[RemoteIssue], list[str]]:
    """Apply every enabled bucket, then keep the first occurrence of each id.

    Returns ``(filtered, unique, duplicate_ids)``. ``filtered`` holds the
    per-bucket matches concatenated in bucket order, so an issue matching two
    buckets appears twice there and once in ``unique``.
    """
    pool = list(issues)
    filtered: list[RemoteIssue] = []
    for matcher in matchers_for(selection, archive_status_id):
        filtered.extend(issue for issue in pool if matcher(issue))

    seen: set[str] = set()
    seen_without_id: set[int] = set()
    unique: list[RemoteIssue] = []
    duplicates: list[str] = []
    for issue in filtered:
        if issue.id is None or not str(issue.id).strip():
            # Tasks without an id are only collapsed when the same task matched twice
            if id(issue) not in seen_without_id:
                seen_without_id.add(id(issue))
                unique.append(issue)
            continue
        key = str(issue.id)
        if key in seen:
            duplicates.append(key)
            continue
        seen.add(key)
        unique.append(issue)
    return filtered, unique, duplicates
