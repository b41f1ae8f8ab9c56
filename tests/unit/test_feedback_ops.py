from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from yourvoice.core.errors import Unauthorized, ValidationFailure
from yourvoice.schemas.feedback import FeedbackStatus, FeedbackUpdateIn
from yourvoice.schemas.session import SessionData
from yourvoice.services.feedback_ops import apply_update, toggle_reaction

ADMIN = SessionData(id="U001", is_logged_in=True, username="admin", personnel_type="Admin")
USER = SessionData(id="U002", is_logged_in=True, username="a.nakato", personnel_type="User")
OTHER = SessionData(id="U003", is_logged_in=True, username="e.okello", personnel_type="User")
ANON = SessionData()


def _op(body):
    return FeedbackUpdateIn.model_validate(body).op


# -------------------------
# toggle_reaction
# -------------------------
def test_like_then_like_again_clears(record_factory):
    r = toggle_reaction(record_factory(), "U002", "like")
    assert "U002" in r.likes and "U002" not in r.dislikes

    r = toggle_reaction(r, "U002", "like")
    assert "U002" not in r.likes and "U002" not in r.dislikes


def test_dislike_moves_actor_out_of_likes(record_factory):
    r = toggle_reaction(record_factory(likes=["U002", "U003"]), "U002", "dislike")
    assert r.likes == ["U003"]
    assert r.dislikes == ["U002"]


def test_like_moves_actor_out_of_dislikes(record_factory):
    r = toggle_reaction(record_factory(dislikes=["U002"]), "U002", "like")
    assert r.likes == ["U002"]
    assert r.dislikes == []


def test_toggle_leaves_other_actors_alone(record_factory):
    r = toggle_reaction(record_factory(likes=["U003"], dislikes=["U004"]), "U002", "like")
    assert r.likes == ["U003", "U002"]
    assert r.dislikes == ["U004"]


def test_toggle_rejects_unknown_reaction(record_factory):
    with pytest.raises(ValidationFailure):
        toggle_reaction(record_factory(), "U002", "love")


# -------------------------
# apply_update
# -------------------------
def test_reactions_require_login(record_factory, now):
    with pytest.raises(Unauthorized) as e:
        apply_update(record_factory(), _op({"action": "like"}), ANON, now)
    assert e.value.status_code == 401


def test_comment_appends_in_order(record_factory, now):
    r = apply_update(record_factory(), _op({"action": "comment", "comment": "first"}), USER, now)
    r = apply_update(r, _op({"action": "comment", "comment": "  second  "}), OTHER, now + timedelta(minutes=1))
    assert [(c.user_id, c.comment) for c in r.comments] == [("U002", "first"), ("U003", "second")]
    assert r.comments[0].created_at == now


def test_blank_comment_rejected(record_factory, now):
    with pytest.raises(ValidationFailure):
        apply_update(record_factory(), _op({"action": "comment", "comment": "   "}), USER, now)


def test_approve_is_admin_only(record_factory, now):
    with pytest.raises(Unauthorized) as e:
        apply_update(record_factory(), _op({"action": "approve"}), USER, now)
    assert e.value.status_code == 403

    r = apply_update(record_factory(), _op({"action": "approve"}), ADMIN, now)
    assert r.approved is True


def test_assign_forces_pending(record_factory, now):
    r = apply_update(
        record_factory(status=FeedbackStatus.OVERDUE),
        _op({"action": "assign", "assigned_to": "U003"}),
        ADMIN,
        now,
    )
    assert r.assigned_to == "U003"
    assert r.status == FeedbackStatus.PENDING


def test_assign_by_user_forbidden(record_factory, now):
    with pytest.raises(Unauthorized):
        apply_update(record_factory(), _op({"action": "assign", "assigned_to": "U003"}), USER, now)


def test_resolve_only_by_current_assignee(record_factory, now):
    r = record_factory(assigned_to="U003", status=FeedbackStatus.PENDING)

    with pytest.raises(Unauthorized):
        apply_update(r, _op({"action": "resolve"}), USER, now)
    with pytest.raises(Unauthorized):
        apply_update(r, _op({"action": "resolve"}), ADMIN, now)

    done = apply_update(r, _op({"action": "resolve"}), OTHER, now)
    assert done.status == FeedbackStatus.RESOLVED


def test_resolve_unassigned_forbidden(record_factory, now):
    with pytest.raises(Unauthorized):
        apply_update(record_factory(), _op({"action": "resolve"}), OTHER, now)


def test_patch_by_submitter(record_factory, now):
    r = record_factory(submitted_by="U002")
    out = apply_update(r, _op({"action": "patch", "fields": {"title": "Parking for bikes"}}), USER, now)
    assert out.title == "Parking for bikes"
    assert out.concern == r.concern


def test_patch_validity(record_factory, now):
    end = now + timedelta(days=30)
    out = apply_update(
        record_factory(),
        _op({"action": "patch", "fields": {"validity": {"start_date": now.isoformat(), "end_date": end.isoformat()}}}),
        ADMIN,
        now,
    )
    assert out.validity.end_date == end


@pytest.mark.parametrize(
    "assigned_to,expected",
    [(None, FeedbackStatus.OPEN), ("U003", FeedbackStatus.PENDING)],
)
def test_extending_window_lifts_overdue(record_factory, now, assigned_to, expected):
    overdue = record_factory(status=FeedbackStatus.OVERDUE, assigned_to=assigned_to)
    window = {"start_date": now.isoformat(), "end_date": (now + timedelta(days=9)).isoformat()}
    out = apply_update(overdue, _op({"action": "patch", "fields": {"validity": window}}), ADMIN, now)
    assert out.status == expected


def test_dropping_window_lifts_overdue(record_factory, now):
    overdue = record_factory(status=FeedbackStatus.OVERDUE)
    out = apply_update(overdue, _op({"action": "patch", "fields": {"validity": None}}), ADMIN, now)
    assert out.validity is None
    assert out.status == FeedbackStatus.OPEN


def test_window_still_past_keeps_overdue(record_factory, now):
    overdue = record_factory(status=FeedbackStatus.OVERDUE)
    window = {
        "start_date": (now - timedelta(days=9)).isoformat(),
        "end_date": (now - timedelta(days=2)).isoformat(),
    }
    out = apply_update(overdue, _op({"action": "patch", "fields": {"validity": window}}), ADMIN, now)
    assert out.status == FeedbackStatus.OVERDUE


def test_patch_validity_mixed_timezones_is_validation_error():
    window = {"start_date": "2026-10-18T00:00:00", "end_date": "2026-10-17T00:00:00Z"}
    with pytest.raises(ValidationError):
        _op({"action": "patch", "fields": {"validity": window}})


def test_patch_by_stranger_forbidden(record_factory, now):
    with pytest.raises(Unauthorized):
        apply_update(
            record_factory(submitted_by="U002"),
            _op({"action": "patch", "fields": {"title": "Something else"}}),
            OTHER,
            now,
        )


@pytest.mark.parametrize(
    "fields",
    [
        {"status": "Resolved"},
        {"approved": True},
        {"likes": ["U009"]},
        {},
        {"title": None},
        {"title": "abc"},
    ],
)
def test_patch_rejects_non_patchable_or_invalid_fields(fields):
    with pytest.raises(ValidationError):
        _op({"action": "patch", "fields": fields})


def test_unknown_action_rejected():
    with pytest.raises(ValidationError):
        _op({"action": "merge", "status": "Resolved"})
