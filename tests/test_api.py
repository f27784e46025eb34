"""Tests for the HTTP routes."""

from sqlmodel import select

from hackhyre.models import Application, ApplicationStatus, RecruiterRelevance


def _as(user):
    return {"X-User-Id": user.id}


class TestPublicRoutes:

    def test_search_and_get_job(self, client, factory):
        recruiter = factory.recruiter()
        job = factory.job(recruiter, "React Developer", factory.company(recruiter), is_remote=True)

        response = client.get("/api/jobs", params={"q": "react", "location": "remote"})
        assert response.status_code == 200
        assert [j["id"] for j in response.json()] == [job.id]
        assert response.json()[0]["company"]["name"] == "Acme"

        assert client.get(f"/api/jobs/{job.id}").json()["title"] == "React Developer"
        assert client.get("/api/jobs/missing").status_code == 404

    def test_invalid_filter_value(self, client):
        assert client.get("/api/jobs", params={"sort": "random"}).status_code == 422

    def test_company_routes(self, client, factory):
        recruiter = factory.recruiter()
        factory.job(recruiter, "One", factory.company(recruiter, name="Acme"))

        assert client.get("/api/companies/Acme").json()["job_count"] == 1
        assert len(client.get("/api/companies/Acme/jobs").json()) == 1
        assert client.get("/api/companies/top").json()[0]["name"] == "Acme"
        assert client.get("/api/companies/Nope").status_code == 404


class TestApplicationRoutes:

    def test_guest_submission_is_scored_in_background(self, client, session, factory, fake_llm):
        job = factory.job(factory.recruiter())

        response = client.post("/api/applications", json={
            "job_id": job.id, "candidate_name": "Guest", "candidate_email": "guest@x.com",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"]
        application = session.get(Application, body["application_id"])
        session.refresh(application)
        assert application.candidate_id is None
        assert application.relevance_score is not None
        assert len(fake_llm.candidate_calls) == 1

    def test_duplicate_submission(self, client, factory):
        job = factory.job(factory.recruiter())
        payload = {"job_id": job.id, "candidate_name": "Jane", "candidate_email": "jane@x.com"}

        client.post("/api/applications", json=payload)
        response = client.post("/api/applications", json={**payload, "candidate_email": "Jane@X.com"})

        assert response.status_code == 400
        assert response.json()["detail"] == "You have already applied for this position."

    def test_upload_validation(self, client):
        ok = client.post("/api/applications/upload", files={"file": ("cv.pdf", b"%PDF-1.4 data", "application/pdf")})
        assert ok.status_code == 200
        assert ok.json()["url"].startswith("/uploads/")
        assert ok.json()["url"].endswith(".pdf")

        bad_type = client.post("/api/applications/upload", files={"file": ("cv.txt", b"hello", "text/plain")})
        assert bad_type.status_code == 400

        too_big = client.post(
            "/api/applications/upload",
            files={"file": ("cv.pdf", b"0" * (5 * 1024 * 1024 + 1), "application/pdf")},
        )
        assert too_big.status_code == 400


class TestCandidateRoutes:

    def test_requires_user_header(self, client):
        assert client.get("/api/me/applications").status_code == 401

    def test_applications_badges_and_dashboard(self, client, factory):
        candidate = factory.user()
        job = factory.job(factory.recruiter())
        app = factory.application(job, email=candidate.email, candidate=candidate, status=ApplicationStatus.under_review)

        listing = client.get("/api/me/applications", headers=_as(candidate)).json()
        assert listing["stats"]["active"] == 1

        detail = client.get(f"/api/me/applications/{app.id}", headers=_as(candidate))
        assert detail.status_code == 200

        assert client.get("/api/me/badges", headers=_as(candidate)).json() == {"/applications": 1}

        dashboard = client.get("/api/me/dashboard", params={"saved": 2}, headers=_as(candidate)).json()
        assert len(dashboard["chart"]) == 7
        assert dashboard["trends"]["saved"] == "2 saved"
        assert dashboard["stats"]["total"] == 1

    def test_other_candidates_application_is_hidden(self, client, factory):
        owner = factory.user()
        other = factory.user()
        app = factory.application(factory.job(factory.recruiter()), candidate=owner)

        assert client.get(f"/api/me/applications/{app.id}", headers=_as(other)).status_code == 404


class TestRelevanceRoutes:

    def test_generate(self, client):
        response = client.post("/api/relevance/generate", json={
            "resume_data": {"headline": "Dev", "skills": ["React"]},
            "job_data": {
                "title": "Frontend", "description": "UI work",
                "experience_level": "mid", "employment_type": "full_time",
            },
        })
        assert response.status_code == 200
        assert response.json()["match_percentage"] == 82

    def test_parse_resume(self, client):
        response = client.post(
            "/api/relevance/parse-resume",
            files={"file": ("cv.docx", b"docx-bytes",
                            "application/vnd.openxmlformats-officedocument.wordprocessingml.document")},
        )
        assert response.status_code == 200
        assert response.json()["skills"] == ["React", "TypeScript"]


class TestRecruiterRoutes:

    def test_candidate_role_is_forbidden(self, client, factory):
        assert client.get("/api/recruiter/candidates", headers=_as(factory.user())).status_code == 403

    def test_unknown_user(self, client):
        assert client.get("/api/recruiter/candidates", headers={"X-User-Id": "ghost"}).status_code == 401

    def test_candidates_detail_and_compare(self, client, factory):
        recruiter = factory.recruiter()
        job = factory.job(recruiter, "Frontend")
        a = factory.application(job, email="a@x.com", name="A", score=0.4)
        b = factory.application(job, email="b@x.com", name="B", score=0.9)

        candidates = client.get("/api/recruiter/candidates", headers=_as(recruiter)).json()
        assert [c["name"] for c in candidates] == ["B", "A"]

        detail = client.get(f"/api/recruiter/candidates/{a.id}", headers=_as(recruiter))
        assert detail.json()["email"] == "a@x.com"

        comparison = client.get(
            "/api/recruiter/candidates/compare",
            params=[("id", a.id), ("id", b.id)],
            headers=_as(recruiter),
        ).json()
        assert len(comparison["candidates"]) == 2

        assert len(client.get("/api/recruiter/applications", headers=_as(recruiter)).json()) == 2
        assert client.get("/api/recruiter/jobs", headers=_as(recruiter)).json()[0]["application_count"] == 2

    def test_status_update(self, client, factory):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))

        response = client.patch(
            f"/api/recruiter/applications/{app.id}/status",
            json={"status": "interviewing"}, headers=_as(recruiter),
        )
        assert response.json() == {"id": app.id, "status": "interviewing"}

        intruder = factory.recruiter(name="Intruder")
        response = client.patch(
            f"/api/recruiter/applications/{app.id}/status",
            json={"status": "hired"}, headers=_as(intruder),
        )
        assert response.status_code == 404

    def test_relevance_is_generated_once(self, client, session, factory, fake_llm):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))
        url = f"/api/recruiter/candidates/{app.id}/relevance"

        first = client.post(url, headers=_as(recruiter))
        second = client.post(url, headers=_as(recruiter))

        assert first.status_code == 200
        assert first.json() == second.json()
        assert len(fake_llm.recruiter_calls) == 1
        assert len(session.exec(select(RecruiterRelevance)).all()) == 1

    def test_relevance_for_foreign_application(self, client, factory):
        app = factory.application(factory.job(factory.recruiter()))
        other = factory.recruiter(name="Other")

        assert client.post(f"/api/recruiter/candidates/{app.id}/relevance", headers=_as(other)).status_code == 404

    def test_chat_requires_trailing_user_message(self, client, factory):
        response = client.post(
            "/api/recruiter/chat",
            json={"messages": [{"role": "assistant", "content": "Hi"}]},
            headers=_as(factory.recruiter()),
        )
        assert response.status_code == 400

    def test_chat_model_failure_is_bad_gateway(self, client, factory, fake_llm):
        class Overloaded:
            def send_message(self, content):
                raise RuntimeError("503 The model is overloaded")

        fake_llm.chat = Overloaded()
        response = client.post(
            "/api/recruiter/chat",
            json={"messages": [{"role": "user", "content": "Post a job"}]},
            headers=_as(factory.recruiter()),
        )
        assert response.status_code == 502
        assert "overloaded" in response.json()["detail"]


class TestGoogleRoutes:

    def test_connect_and_status(self, client, factory):
        recruiter = factory.recruiter()

        url = client.get("/api/google/connect", headers=_as(recruiter)).json()["url"]
        assert f"state={recruiter.id}" in url
        assert client.get("/api/google/status", headers=_as(recruiter)).json() == {"connected": False}

    def test_callback_rejects_missing_code(self, client):
        assert client.get("/api/google/callback", params={"error": "access_denied"}).status_code == 400

    def test_interview_without_calendar(self, client, factory):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))

        response = client.post("/api/recruiter/interviews", json={
            "application_id": app.id, "scheduled_at": "2024-05-01T09:00:00Z",
        }, headers=_as(recruiter))

        assert response.status_code == 200
        assert response.json()["meet_link"] is None

        interview_id = response.json()["id"]
        assert client.delete(f"/api/recruiter/interviews/{interview_id}", headers=_as(recruiter)).json() == {
            "deleted": True
        }
