# yourvoice/services/feedback_ops.py
from __future__ import annotations

from datetime import datetime
from typing import Literal

from yourvoice.core.errors import Unauthorized, ValidationFailure
from yourvoice.schemas.feedback import (
    ApproveOp,
    AssignOp,
    Comment,
    CommentOp,
    DislikeOp,
    FeedbackRecord,
    FeedbackStatus,
    FeedbackUpdate,
    LikeOp,
    PatchOp,
    ResolveOp,
    Validity,
    as_utc,
)
from yourvoice.schemas.session import SessionData

Reaction = Literal["like", "dislike"]


def toggle_reaction(record: FeedbackRecord, actor_id: str, reaction: Reaction) -> FeedbackRecord:
    """
    Un-react when the actor already holds `reaction`; otherwise add it and drop
    the opposite one. An actor is never in both sets.
    """
    if reaction == "like":
        target, opposite = list(record.likes), list(record.dislikes)
    elif reaction == "dislike":
        target, opposite = list(record.dislikes), list(record.likes)
    else:
        raise ValidationFailure("reaction must be like or dislike", param="action")

    if actor_id in target:
        target = [a for a in target if a != actor_id]
    else:
        target.append(actor_id)
        opposite = [a for a in opposite if a != actor_id]

    if reaction == "like":
        return record.model_copy(update={"likes": target, "dislikes": opposite})
    return record.model_copy(update={"likes": opposite, "dislikes": target})


def _require_login(actor: SessionData) -> str:
    if not actor.is_logged_in or not actor.id:
        raise Unauthorized("User not authenticated.")
    return actor.id


def _require_admin(actor: SessionData) -> str:
    actor_id = _require_login(actor)
    if not actor.is_admin:
        raise Unauthorized("Admin access required.", forbidden=True)
    return actor_id


def apply_update(
    record: FeedbackRecord,
    op: FeedbackUpdate,
    actor: SessionData,
    now: datetime,
) -> FeedbackRecord:
    """
    Apply one permitted update operation on behalf of `actor`. Returns the new
    record; persisting it is up to the caller.
    """
    if isinstance(op, LikeOp):
        return toggle_reaction(record, _require_login(actor), "like")

    if isinstance(op, DislikeOp):
        return toggle_reaction(record, _require_login(actor), "dislike")

    if isinstance(op, CommentOp):
        actor_id = _require_login(actor)
        text = op.comment.strip()
        if not text:
            raise ValidationFailure("comment must not be empty", param="comment")
        comment = Comment(user_id=actor_id, comment=text, created_at=now)
        return record.model_copy(update={"comments": [*record.comments, comment]})

    if isinstance(op, ApproveOp):
        _require_admin(actor)
        return record.model_copy(update={"approved": True})

    if isinstance(op, AssignOp):
        _require_admin(actor)
        return record.model_copy(
            update={"assigned_to": op.assigned_to, "status": FeedbackStatus.PENDING}
        )

    if isinstance(op, ResolveOp):
        actor_id = _require_login(actor)
        if record.assigned_to is None or record.assigned_to != actor_id:
            raise Unauthorized("Only the current assignee can resolve this feedback.", forbidden=True)
        return record.model_copy(update={"status": FeedbackStatus.RESOLVED})

    if isinstance(op, PatchOp):
        actor_id = _require_login(actor)
        if not actor.is_admin and record.submitted_by != actor_id:
            raise Unauthorized("Only admins or the submitter can edit this feedback.", forbidden=True)
        changes = dict(op.fields.changes())
        if "validity" in changes:
            validity = Validity.model_validate(changes["validity"]) if changes["validity"] else None
            changes["validity"] = validity
            # a window that no longer ends before now lifts Overdue
            if record.status == FeedbackStatus.OVERDUE and (
                validity is None or as_utc(now) <= validity.end_date
            ):
                changes["status"] = FeedbackStatus.PENDING if record.assigned_to else FeedbackStatus.OPEN
        return record.model_copy(update=changes)

    raise ValidationFailure(f"Unsupported action: {getattr(op, 'action', None)!r}", param="action")
