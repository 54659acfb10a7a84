import pytest

from bugbridge.domain.enums import Priority
from bugbridge.domain.priority import needs_priority_update, priority_label, resolve_priority


@pytest.mark.parametrize(
    "pid,label",
    [(0, "not set"), (1, "critical"), (2, "important"), (3, "normal"), (4, "minor")],
)
def test_priority_table_labels(pid, label):
    assert priority_label(pid) == label
    assert resolve_priority(label) == Priority(pid)


def test_priority_table_is_bijective():
    labels = [priority_label(p.value) for p in Priority]
    assert len(set(labels)) == len(labels)


def test_unknown_priority_id_defaults_to_normal():
    assert priority_label(9) == "normal"
    assert priority_label(None) == "normal"
    assert priority_label("abc") == "normal"


def test_unknown_priority_id_uses_free_text_priority():
    assert priority_label(None, "urgent") == "urgent"
    assert priority_label(None, {"name": "blocker"}) == "blocker"


def test_string_priority_id_is_accepted():
    assert priority_label("2") == "important"


def test_resolve_priority_is_case_insensitive_and_defaults():
    assert resolve_priority("  CRITICAL ") is Priority.critical
    assert resolve_priority("Not Set") is Priority.not_set
    assert resolve_priority("whatever") is Priority.normal
    assert resolve_priority(None) is Priority.normal


def test_priority_update_only_for_non_default_priorities():
    assert needs_priority_update(Priority.critical)
    assert needs_priority_update(Priority.important)
    assert needs_priority_update(Priority.minor)
    assert not needs_priority_update(Priority.normal)
    assert not needs_priority_update(Priority.not_set)
