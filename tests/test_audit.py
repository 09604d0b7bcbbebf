from types import SimpleNamespace

import pytest

from ticketing.models import Category, TicketPriority, TicketStatus, User
from ticketing.services import audit


def _category(ident, name):
    return Category(id=ident, name=name)


def test_status_change_only_when_value_differs():
    assert audit.status_change(TicketStatus.NEW, TicketStatus.NEW) is None
    change = audit.status_change(TicketStatus.NEW, TicketStatus.IN_PROGRESS)
    assert change == audit.FieldChange("status_changed", "New", "In_Progress")


def test_priority_change_reports_names():
    low = TicketPriority(id="p1", name="Low")
    high = TicketPriority(id="p2", name="High")
    assert audit.priority_change(low, TicketPriority(id="p1", name="Low")) is None
    assert audit.priority_change(low, high) == audit.FieldChange("priority_changed", "Low", "High")


def test_assignee_change_uses_full_names_and_none_for_unassigned():
    alan = User(id="u1", email="alan@example.com", first_name="Alan", last_name="Agent")
    nameless = User(id="u2", email="x@example.com")

    assert audit.assignee_change(None, alan) == audit.FieldChange("assignee_changed", None, "Alan Agent")
    assert audit.assignee_change(alan, nameless).new_value == "x@example.com"
    assert audit.assignee_change(alan, None).new_value is None
    assert audit.assignee_change(alan, alan) is None


def test_category_change_is_a_set_difference():
    network, hardware, software = _category("c1", "Network"), _category("c2", "Hardware"), _category("c3", "Software")

    change = audit.category_change([network, hardware], [hardware, software])

    assert change.change_type == "category_changed"
    assert change.old_value == "Hardware, Network"
    assert change.new_value == "added: Software; removed: Network"


def test_category_change_omits_empty_parts():
    network = _category("c1", "Network")
    assert audit.category_change([], [network]) == audit.FieldChange("category_changed", None, "added: Network")
    assert audit.category_change([network], []).new_value == "removed: Network"
    assert audit.category_change([network], [_category("c1", "Network")]) is None


def test_text_changes_treat_blank_and_none_alike():
    assert audit.location_change(None, "") is None
    assert audit.location_change("HQ", "Annex") == audit.FieldChange("location_changed", "HQ", "Annex")
    assert audit.requester_email_change("a@example.com", None).new_value is None


def test_description_change_is_truncated():
    change = audit.description_change("short", "x" * 250)
    assert change.old_value == "short"
    assert len(change.new_value) == audit.DESCRIPTION_PREVIEW


def test_replay_rebuilds_value_and_ignores_other_fields():
    events = [
        SimpleNamespace(id=1, change_type="status_changed", old_value="New", new_value="Assigned"),
        SimpleNamespace(id=2, change_type="priority_changed", old_value="Low", new_value="High"),
        SimpleNamespace(id=3, change_type="status_changed", old_value="Assigned", new_value="Resolved"),
    ]
    assert audit.replay(events, "status_changed", "New") == "Resolved"
    assert audit.replay(events, "priority_changed", "Low") == "High"
    assert audit.replay([], "status_changed", "New") == "New"


def test_replay_detects_broken_chain():
    events = [
        SimpleNamespace(id=1, change_type="status_changed", old_value="New", new_value="Assigned"),
        SimpleNamespace(id=2, change_type="status_changed", old_value="On_Hold", new_value="Closed"),
    ]
    with pytest.raises(ValueError):
        audit.replay(events, "status_changed", "New")
