import logging

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import select

from engagement.core.exceptions import ConflictError, DatabaseError
from engagement.models import Notification, User
from engagement.services.notifications import Notifier, mark_read, unread_count
from engagement.services.transaction import atomic


def test_commits_on_success(session, client_user):
    with atomic(session, "rename"):
        client_user.full_name = "Renamed"
        session.add(client_user)

    session.expire_all()
    assert session.get(User, client_user.id).full_name == "Renamed"


def test_business_errors_roll_back_and_propagate(session, client_user):
    notifier = Notifier(session)

    with pytest.raises(ConflictError):
        with atomic(session, "rename", notifier):
            client_user.full_name = "Renamed"
            session.add(client_user)
            session.flush()
            notifier.notify(client_user.id, "Test", {})
            raise ConflictError("nope")

    assert session.get(User, client_user.id).full_name == "Carla Client"
    assert notifier.pending == []


def test_database_errors_become_generic(session, caplog):
    with caplog.at_level(logging.ERROR, logger="engagement.services.transaction"):
        with pytest.raises(DatabaseError) as excinfo:
            with atomic(session, "bid acceptance"):
                raise OperationalError("UPDATE bids", {}, Exception("deadlock"))

    assert excinfo.value.message == "Database error during bid acceptance"
    assert excinfo.value.status_code == 500
    assert "bid acceptance failed" in caplog.text


def test_dispatch_writes_queue(session, client_user, contributor):
    notifier = Notifier(session)
    notifier.notify(client_user.id, "Test", {"n": 1})
    notifier.notify(None, "Test", {"n": 2})
    notifier.send_message(1, client_user.id, contributor.id, "hi")

    assert notifier.dispatch() == 2
    assert notifier.pending == []
    assert unread_count(session, client_user.id) == 1


def test_dispatch_failure_is_logged_and_dropped(session, client_user, monkeypatch, caplog):
    notifier = Notifier(session)
    notifier.notify(client_user.id, "Test", {})

    def fail(rows):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(session, "add_all", fail)
    with caplog.at_level(logging.WARNING, logger="engagement.services.notifications"):
        assert notifier.dispatch() == 0

    assert "Dropped 1 notification(s)" in caplog.text
    assert session.exec(select(Notification)).all() == []


def test_mark_single_notification(session, client_user):
    notifier = Notifier(session)
    notifier.notify(client_user.id, "A", {})
    notifier.notify(client_user.id, "B", {})
    notifier.dispatch()
    first = session.exec(select(Notification).where(Notification.type == "A")).one()

    assert mark_read(session, client_user.id, notification_id=first.id) == 1
    assert unread_count(session, client_user.id) == 1
    assert mark_read(session, client_user.id, mark_all=True) == 1
