import pytest
from sqlmodel import select

from engagement.core.security import create_access_token
from engagement.models import Milestone, Notification

from conftest import auth_headers

API = "/api/v1"


def _create_project(api, client_user, **overrides):
    body = {
        "title": "Landing page",
        "description": (
            "Build a landing page.\n\n[SCOPE]\nTwo pages.\n\n[MILESTONES]\n"
            '[{"title": "Draft", "due": "10/01/2025", "deliverables": [{"name": "Wireframe", "required": true}]}]'
        ),
        "budget_min": 500,
        "budget_max": 1500,
        "deadline": "12/01/2025",
        "skills": ["html"],
    }
    body.update(overrides)
    response = api.post(f"{API}/projects", json=body, headers=auth_headers(client_user))
    assert response.status_code == 200, response.text
    return response.json()["project_id"]


def _bid(api, contributor, project_id):
    response = api.post(f"{API}/bids", json={
        "project_id": project_id, "amount": 900, "timeline_days": 14, "proposal_text": "Hire me",
    }, headers=auth_headers(contributor))
    assert response.status_code == 200, response.text
    return response.json()["bid_id"]


def test_health(api):
    response = api.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "ok"


def test_requires_token(api):
    response = api.get(f"{API}/projects")

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["error_code"] == "NOT_AUTHENTICATED"


def test_rejects_bad_token(api):
    response = api.get(f"{API}/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_cookie_authentication(api, client_user):
    api.cookies.set("access_token", create_access_token(client_user.email))

    response = api.get(f"{API}/users/me")

    assert response.status_code == 200
    assert response.json()["email"] == "client@example.com"


def test_contributor_cannot_post_project(api, contributor):
    response = api.post(f"{API}/projects", json={"title": "x"}, headers=auth_headers(contributor))

    assert response.status_code == 403


def test_active_role_must_be_held(api, contributor):
    response = api.get(f"{API}/projects", headers=auth_headers(contributor, active_role="Client"))

    assert response.status_code == 403


def test_dual_role_user_switches_to_client(api, dual_user):
    as_contributor = api.post(f"{API}/projects", json={"title": "x"}, headers=auth_headers(dual_user))
    as_client = api.post(f"{API}/projects", json={"title": "x"}, headers=auth_headers(dual_user, "Client"))

    assert as_contributor.status_code == 403
    # Passes the role check, then fails validation
    assert as_client.status_code == 400
    assert as_client.json()["error"] == "Missing required fields"


@pytest.mark.parametrize("budget_min, budget_max", [
    (900, 100),
    ("nan", "nan"),
    (100, "inf"),
])
def test_project_validation(api, client_user, budget_min, budget_max):
    response = api.post(f"{API}/projects", json={
        "title": "Bad budget", "description": "d", "budget_min": budget_min, "budget_max": budget_max,
        "deadline": "2025-12-01",
    }, headers=auth_headers(client_user))

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_project_view_splits_description(api, client_user):
    project_id = _create_project(api, client_user)

    view = api.get(f"{API}/projects/{project_id}", headers=auth_headers(client_user)).json()

    assert view["summary"] == "Build a landing page."
    assert view["scope"] == "Two pages."
    assert view["deadline"] == "2025-12-01"
    assert view["status"] == "Open"
    assert view["milestone_templates"][0]["due"] == "2025-10-01"


def test_unknown_project_is_404(api, client_user):
    response = api.get(f"{API}/projects/999", headers=auth_headers(client_user))

    assert response.status_code == 404
    assert response.json()["error"] == "Project not found"


def test_list_open_projects(api, client_user, contributor):
    _create_project(api, client_user, title="Open one")

    response = api.get(f"{API}/projects", params={"status": "Open"}, headers=auth_headers(contributor))

    assert [p["title"] for p in response.json()] == ["Open one"]


def test_full_lifecycle(api, session, client_user, contributor, other_contributor):
    client = auth_headers(client_user)
    dev = auth_headers(contributor)

    project_id = _create_project(api, client_user)
    bid_id = _bid(api, contributor, project_id)
    _bid(api, other_contributor, project_id)

    bids = api.get(f"{API}/bids", params={"project_id": project_id}, headers=client).json()["bids"]
    assert len(bids) == 2

    accepted = api.put(f"{API}/bids", json={"bid_id": bid_id, "action": "accept"}, headers=client)
    assert accepted.status_code == 200, accepted.text

    project = api.get(f"{API}/projects/{project_id}", headers=client).json()
    assert project["status"] == "InProgress"
    assert project["assignment_id"] is not None

    listing = api.get(f"{API}/milestones", params={"project_id": project_id}, headers=dev).json()
    milestone = listing["milestones"][0]
    assert (milestone["title"], milestone["due_date"], milestone["progress"]) == ("Draft", "2025-10-01", 0)

    submitted = api.put(f"{API}/milestones", json={
        "milestone_id": milestone["id"],
        "action": "submit",
        "submission_notes": {"text": "Here", "deliverables": [{"name": "Wireframe", "files": ["/uploads/w.png"]}]},
    }, headers=dev)
    assert submitted.status_code == 200, submitted.text

    assignments = api.get(f"{API}/assignments", headers=dev).json()["assignments"]
    assert assignments[0]["milestones"][0]["progress"] == 90

    early = api.post(f"{API}/projects/finalize", json={"project_id": project_id}, headers=client)
    assert early.status_code == 400

    approved = api.put(f"{API}/milestones", json={"milestone_id": milestone["id"], "action": "approve"},
                       headers=client)
    assert approved.status_code == 200
    assert approved.json()["message"] == "Milestone is now Approved"

    finalized = api.post(f"{API}/projects/finalize", json={"project_id": project_id}, headers=client)
    assert finalized.status_code == 200, finalized.text

    review = api.post(f"{API}/reviews", json={"project_id": project_id, "stars": 5}, headers=client)
    assert review.status_code == 200
    assert review.json()["rating_avg"] == 5.0

    duplicate = api.post(f"{API}/reviews", json={"project_id": project_id, "stars": 4}, headers=client)
    assert duplicate.status_code == 409

    profile = api.get(f"{API}/users/{contributor.id}", headers=client).json()
    assert profile["rating_avg"] == 5.0


def test_second_accept_conflicts(api, client_user, contributor, other_contributor):
    client = auth_headers(client_user)
    project_id = _create_project(api, client_user)
    first = _bid(api, contributor, project_id)
    second = _bid(api, other_contributor, project_id)

    api.put(f"{API}/bids", json={"bid_id": first, "action": "accept"}, headers=client)
    response = api.put(f"{API}/bids", json={"bid_id": second, "action": "accept"}, headers=client)

    assert response.status_code == 409


def test_duplicate_bid_conflicts(api, client_user, contributor):
    project_id = _create_project(api, client_user)
    _bid(api, contributor, project_id)

    response = api.post(f"{API}/bids", json={
        "project_id": project_id, "amount": 100, "timeline_days": 3, "proposal_text": "again",
    }, headers=auth_headers(contributor))

    assert response.status_code == 409


def test_bid_update_endpoint(api, client_user, contributor):
    project_id = _create_project(api, client_user)
    bid_id = _bid(api, contributor, project_id)

    response = api.patch(f"{API}/bids", json={"bid_id": bid_id, "amount": 1100}, headers=auth_headers(contributor))

    assert response.status_code == 200
    bids = api.get(f"{API}/bids", params={"contributor_id": contributor.id},
                   headers=auth_headers(contributor)).json()["bids"]
    assert bids[0]["amount"] == 1100


def test_contributor_milestone_edit_is_a_request(api, session, client_user, contributor):
    project_id = _create_project(api, client_user)
    bid_id = _bid(api, contributor, project_id)
    api.put(f"{API}/bids", json={"bid_id": bid_id, "action": "accept"}, headers=auth_headers(client_user))
    milestone = session.exec(select(Milestone)).one()

    response = api.patch(f"{API}/milestones", json={"milestone_id": milestone.id, "title": "Renamed"},
                         headers=auth_headers(contributor))

    assert response.json() == {"success": True, "applied": False}
    session.refresh(milestone)
    assert milestone.title == "Draft"


def test_notification_feed(api, client_user, contributor):
    project_id = _create_project(api, client_user)
    _bid(api, contributor, project_id)
    client = auth_headers(client_user)

    feed = api.get(f"{API}/notifications", headers=client).json()["notifications"]
    assert [n["type"] for n in feed] == ["BidPending"]
    assert feed[0]["payload"]["project_title"] == "Landing page"
    assert api.get(f"{API}/notifications/unread-count", headers=client).json()["unread_count"] == 1

    marked = api.put(f"{API}/notifications", json={"mark_all": True}, headers=client)
    assert marked.status_code == 200
    assert api.get(f"{API}/notifications/unread-count", headers=client).json()["unread_count"] == 0


def test_mark_read_needs_target(api, client_user):
    response = api.put(f"{API}/notifications", json={}, headers=auth_headers(client_user))
    assert response.status_code == 400


def test_notifications_are_private(api, session, client_user, contributor):
    project_id = _create_project(api, client_user)
    _bid(api, contributor, project_id)
    note = session.exec(select(Notification)).one()

    api.put(f"{API}/notifications", json={"notification_id": note.id}, headers=auth_headers(contributor))

    session.refresh(note)
    assert note.is_read == 0


def test_upload(api, client_user, tmp_path):
    from engagement.api import deps
    from engagement.main import app
    from engagement.services.storage import LocalFileStorage

    app.dependency_overrides[deps.get_storage] = lambda: LocalFileStorage(root=str(tmp_path), base_url="/uploads")

    response = api.post(
        f"{API}/uploads",
        data={"project_id": "7"},
        files={"file": ("my notes.txt", b"hello", "text/plain")},
        headers=auth_headers(client_user),
    )

    assert response.status_code == 200, response.text
    url = response.json()["url"]
    assert url.startswith("/uploads/7/") and url.endswith("_my_notes.txt")
    stored = list((tmp_path / "7").iterdir())
    assert len(stored) == 1 and stored[0].read_bytes() == b"hello"


def test_upload_rejects_type(api, client_user, tmp_path):
    from engagement.api import deps
    from engagement.main import app
    from engagement.services.storage import LocalFileStorage

    app.dependency_overrides[deps.get_storage] = lambda: LocalFileStorage(root=str(tmp_path))

    response = api.post(
        f"{API}/uploads",
        files={"file": ("run.sh", b"echo hi", "application/x-sh")},
        headers=auth_headers(client_user),
    )

    assert response.status_code == 400


def test_admin_creates_users(api, admin_user, contributor):
    created = api.post(f"{API}/users", json={
        "email": "new@example.com", "full_name": "New Person", "roles": ["Client", "Contributor"],
    }, headers=auth_headers(admin_user))

    assert created.status_code == 200, created.text
    assert created.json()["primary_role"] == "Client"
    assert api.post(f"{API}/users", json={"email": "x@example.com"},
                    headers=auth_headers(contributor)).status_code == 403
    assert api.post(f"{API}/users", json={"email": "new@example.com"},
                    headers=auth_headers(admin_user)).status_code == 409
