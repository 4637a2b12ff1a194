import sys
import os
import uuid
import requests
from sqlmodel import Session

# Add current directory to path
sys.path.append(os.getcwd())

from engagement.db.session import engine, init_db
from engagement.models.user import User, UserRole
from engagement.core.security import create_access_token

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000/api/v1")

# Walks one project from posting to review against a running server
# (uvicorn engagement.main:app) that shares this machine's database settings.

def seed_user(session, role: UserRole, name: str) -> dict:
    user = User(
        email=f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@example.com",
        full_name=name,
        roles=[role],
        primary_role=role,
    )
    session.add(user)
    session.commit()
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}

def check(response, label):
    if response.status_code != 200:
        raise RuntimeError(f"{label}: {response.status_code} {response.text}")
    print(f"✓ {label}")
    return response.json()

def smoke_lifecycle():
    print("--- Engagement Lifecycle Smoke Test ---")
    init_db()
    with Session(engine) as session:
        client = seed_user(session, UserRole.CLIENT, "Smoke Client")
        contributor = seed_user(session, UserRole.CONTRIBUTOR, "Smoke Contributor")

    project = check(requests.post(f"{BASE_URL}/projects", json={
        "title": "Smoke test project",
        "description": "Created by scripts/smoke_lifecycle.py",
        "budget_min": 100,
        "budget_max": 200,
        "deadline": "2030-01-01",
        "milestones": [{"title": "Only", "due": "2029-12-01", "deliverables": [{"name": "Report"}]}],
    }, headers=client, timeout=10), "project posted")
    project_id = project["project_id"]

    bid = check(requests.post(f"{BASE_URL}/bids", json={
        "project_id": project_id, "amount": 150, "timeline_days": 7, "proposal_text": "On it",
    }, headers=contributor, timeout=10), "bid placed")

    check(requests.put(f"{BASE_URL}/bids", json={"bid_id": bid["bid_id"], "action": "accept"},
                       headers=client, timeout=10), "bid accepted")

    milestones = check(requests.get(f"{BASE_URL}/milestones", params={"project_id": project_id},
                                    headers=contributor, timeout=10), "milestones listed")["milestones"]
    milestone_id = milestones[0]["id"]

    check(requests.put(f"{BASE_URL}/milestones", json={
        "milestone_id": milestone_id,
        "action": "submit",
        "submission_notes": {"text": "Done", "deliverables": [{"name": "Report", "files": ["/uploads/report.pdf"]}]},
    }, headers=contributor, timeout=10), "milestone submitted")
    check(requests.put(f"{BASE_URL}/milestones", json={"milestone_id": milestone_id, "action": "approve"},
                       headers=client, timeout=10), "milestone approved")
    check(requests.post(f"{BASE_URL}/projects/finalize", json={"project_id": project_id},
                        headers=client, timeout=10), "project finalized")
    review = check(requests.post(f"{BASE_URL}/reviews", json={"project_id": project_id, "stars": 5},
                                 headers=client, timeout=10), "review submitted")

    print(f"Contributor rating is now {review['rating_avg']}")
    print("--- Engagement Lifecycle Smoke Test SUCCESS ---")

if __name__ == "__main__":
    try:
        smoke_lifecycle()
    except Exception as e:
        print(f"Smoke test FAILED: {e}")
        sys.exit(1)
