import pytest
from sqlmodel import select

from engagement.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from engagement.models import (
    Message, Milestone, Notification, NotificationType, Project, ProjectStatus, Review, User,
)
from engagement.services import milestones
from engagement.services.acceptance import resolve_bid
from engagement.services.finalization import cancel, finalize, submit_review
from engagement.services.notifications import Notifier

from conftest import make_bid, make_project, principal


def _start(session, client_user, contributor, **project_fields):
    project = make_project(session, client_user, **project_fields)
    bid = make_bid(session, contributor, project)
    resolve_bid(session, principal(client_user), bid.id, "accept", Notifier(session))
    return project


def _approve_all(session, client_user, contributor):
    for milestone in session.exec(select(Milestone)).all():
        milestones.submit(session, principal(contributor), milestone.id, "done", None, Notifier(session))
        milestones.approve(session, principal(client_user), milestone.id, Notifier(session))


def _complete(session, client_user, contributor, **project_fields):
    project = _start(session, client_user, contributor, **project_fields)
    _approve_all(session, client_user, contributor)
    finalize(session, principal(client_user), project.id, Notifier(session))
    return project


def test_finalize_after_all_approved(session, client_user, contributor):
    project = _start(session, client_user, contributor)
    _approve_all(session, client_user, contributor)
    notifier = Notifier(session)

    finalize(session, principal(client_user), project.id, notifier)
    notifier.dispatch()

    assert session.get(Project, project.id).status == ProjectStatus.COMPLETED
    completed = session.exec(
        select(Notification).where(Notification.type == NotificationType.PROJECT_COMPLETED)
    ).one()
    assert completed.user_id == contributor.id


def test_finalize_gate(session, client_user, contributor):
    project = _start(session, client_user, contributor)
    draft = session.exec(select(Milestone).where(Milestone.title == "Draft")).one()
    milestones.submit(session, principal(contributor), draft.id, "done", None, Notifier(session))
    milestones.approve(session, principal(client_user), draft.id, Notifier(session))

    with pytest.raises(ValidationError):
        finalize(session, principal(client_user), project.id, Notifier(session))
    assert session.get(Project, project.id).status == ProjectStatus.IN_PROGRESS


def test_finalize_needs_milestones(session, client_user, contributor):
    project = _start(session, client_user, contributor, milestones=[])

    with pytest.raises(ValidationError):
        finalize(session, principal(client_user), project.id, Notifier(session))


def test_finalize_error_precedence(session, client_user, contributor):
    open_project = make_project(session, client_user)

    with pytest.raises(NotFoundError):
        finalize(session, principal(client_user), 404, Notifier(session))
    with pytest.raises(ForbiddenError):
        finalize(session, principal(contributor), open_project.id, Notifier(session))
    with pytest.raises(ConflictError):
        finalize(session, principal(client_user), open_project.id, Notifier(session))


def test_review_updates_rating(session, client_user, contributor):
    project = _complete(session, client_user, contributor)
    notifier = Notifier(session)

    review = submit_review(session, principal(client_user), project.id, 4, "Great work", notifier)
    notifier.dispatch()

    assert review.reviewee_id == contributor.id
    assert session.get(User, contributor.id).rating_avg == 4.0
    received = session.exec(
        select(Notification).where(Notification.type == NotificationType.REVIEW_RECEIVED)
    ).one()
    assert received.user_id == contributor.id


def test_rating_is_mean_of_all_reviews(session, client_user, contributor):
    first = _complete(session, client_user, contributor, title="One")
    submit_review(session, principal(client_user), first.id, 5, None, Notifier(session))

    second = make_project(session, client_user, title="Two", milestones=[{"title": "Only", "due": "2026-01-01"}])
    bid = make_bid(session, contributor, second)
    resolve_bid(session, principal(client_user), bid.id, "accept", Notifier(session))
    only = session.exec(select(Milestone).where(Milestone.title == "Only")).one()
    milestones.submit(session, principal(contributor), only.id, "done", None, Notifier(session))
    milestones.approve(session, principal(client_user), only.id, Notifier(session))
    finalize(session, principal(client_user), second.id, Notifier(session))

    submit_review(session, principal(client_user), second.id, 2, None, Notifier(session))

    assert session.get(User, contributor.id).rating_avg == 3.5


def test_review_is_unique(session, client_user, contributor):
    project = _complete(session, client_user, contributor)
    submit_review(session, principal(client_user), project.id, 5, None, Notifier(session))

    with pytest.raises(ConflictError):
        submit_review(session, principal(client_user), project.id, 1, None, Notifier(session))

    assert len(session.exec(select(Review)).all()) == 1
    assert session.get(User, contributor.id).rating_avg == 5.0


@pytest.mark.parametrize("stars", [0, 6, "five", None, 4.7, "4.5", True])
def test_review_star_range(session, client_user, contributor, stars):
    project = _complete(session, client_user, contributor)

    with pytest.raises(ValidationError):
        submit_review(session, principal(client_user), project.id, stars, None, Notifier(session))


def test_review_requires_completed_project(session, client_user, contributor):
    project = _start(session, client_user, contributor)

    with pytest.raises(ConflictError):
        submit_review(session, principal(client_user), project.id, 5, None, Notifier(session))


def test_only_client_reviews(session, client_user, contributor):
    project = _complete(session, client_user, contributor)

    with pytest.raises(ForbiddenError):
        submit_review(session, principal(contributor), project.id, 5, None, Notifier(session))


def test_contributor_cancels(session, client_user, contributor):
    project = _start(session, client_user, contributor)
    notifier = Notifier(session)

    cancel(session, principal(contributor), project.id, "Scope changed", notifier)
    notifier.dispatch()

    assert session.get(Project, project.id).status == ProjectStatus.CANCELED
    canceled = session.exec(
        select(Notification).where(Notification.type == NotificationType.PROJECT_CANCELED)
    ).one()
    assert canceled.user_id == client_user.id
    message = session.exec(select(Message).where(Message.recipient_id == client_user.id)).one()
    assert "canceled by the contributor" in message.body
    assert "Scope changed" in message.body


def test_client_cancels_open_project(session, client_user):
    project = make_project(session, client_user)

    cancel(session, principal(client_user), project.id, None, Notifier(session))

    assert session.get(Project, project.id).status == ProjectStatus.CANCELED


def test_cancel_rules(session, client_user, contributor, other_contributor):
    project = _complete(session, client_user, contributor)
    open_project = make_project(session, client_user, title="Open one")

    with pytest.raises(ConflictError):
        cancel(session, principal(client_user), project.id, None, Notifier(session))
    with pytest.raises(ForbiddenError):
        cancel(session, principal(other_contributor), open_project.id, None, Notifier(session))
