import pytest
from conftest import login

from scripts.load_seed_users import load_seed_users


@pytest.fixture
def tokens(client):
    load_seed_users()
    return {
        "admin": login(client, email="admin@jobportal.in", password="Admin123"),
        "employer": login(client, email="employer@jobportal.in", password="Employer123"),
        "jobseeker": login(client, email="seeker@jobportal.in", password="Seeker123"),
    }


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.parametrize(
    "method,path,allowed",
    [
        ("get", "/api/jobseeker/profile", "jobseeker"),
        ("put", "/api/jobseeker/profile", "jobseeker"),
        ("get", "/api/jobseeker/jobs", "jobseeker"),
        ("get", "/api/employer/profile", "employer"),
        ("put", "/api/employer/profile", "employer"),
        ("get", "/api/employer/jobs", "employer"),
    ],
)
def test_routes_are_role_gated(client, tokens, method, path, allowed):
    kwargs = {"json": {}} if method == "put" else {}
    assert getattr(client, method)(path, **kwargs).status_code == 401

    for role, token in tokens.items():
        resp = getattr(client, method)(path, headers=_auth(token), **kwargs)
        expected = 200 if role == allowed else 403
        assert resp.status_code == expected, (role, resp.text)


def test_profile_get_and_update(client, tokens):
    resp = client.get("/api/jobseeker/profile", headers=_auth(tokens["jobseeker"]))
    assert resp.json()["user"]["email"] == "seeker@jobportal.in"

    resp = client.put(
        "/api/jobseeker/profile",
        headers=_auth(tokens["jobseeker"]),
        json={"first_name": "  Priya "},
    )
    user = resp.json()["user"]
    assert user["first_name"] == "Priya"
    assert user["last_name"] == "Seeker"

    resp = client.put("/api/employer/profile", headers=_auth(tokens["employer"]), json={"last_name": "X"})
    assert resp.status_code == 400


def test_employer_posts_and_jobseeker_browses(client, tokens):
    employer = _auth(tokens["employer"])
    resp = client.post(
        "/api/employer/job",
        headers=employer,
        json={"title": "Backend Engineer", "description": "FastAPI services", "location": "Pune"},
    )
    assert resp.status_code == 201
    assert resp.json()["job"]["title"] == "Backend Engineer"
    client.post("/api/employer/job", headers=employer, json={"title": "QA Lead", "description": "Testing"})

    mine = client.get("/api/employer/jobs", headers=employer).json()["jobs"]
    assert [j["title"] for j in mine] == ["QA Lead", "Backend Engineer"]

    listed = client.get("/api/jobseeker/jobs", headers=_auth(tokens["jobseeker"])).json()["jobs"]
    assert {j["title"] for j in listed} == {"Backend Engineer", "QA Lead"}
    assert listed[0]["location"] in ("", "Pune")


def test_job_post_validation_and_gate(client, tokens):
    resp = client.post(
        "/api/employer/job",
        headers=_auth(tokens["employer"]),
        json={"title": "  ", "description": "x"},
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/employer/job",
        headers=_auth(tokens["jobseeker"]),
        json={"title": "Nope", "description": "x"},
    )
    assert resp.status_code == 403
