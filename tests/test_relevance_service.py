"""Tests for recruiter relevance generation and background scoring."""

import pytest
from sqlmodel import Session, select

from hackhyre.models import RecruiterRelevance
from hackhyre.schemas import RelevanceAssessment
from hackhyre.services.relevance_service import (
    build_candidate_summary,
    get_or_generate_recruiter_relevance,
    score_application,
)


class TestCandidateSummary:

    def test_guest_falls_back_to_application_fields(self, session, factory):
        app = factory.application(factory.job(factory.recruiter()), name="Guest", cover_letter="I love React")

        summary = build_candidate_summary(session, app)

        assert summary.headline == "Guest"
        assert summary.bio == "I love React"
        assert summary.skills == []

    def test_registered_candidate_uses_profile(self, session, factory):
        candidate = factory.user()
        factory.profile(candidate, headline="Go Engineer", bio="Backend", skills=["Go"], experience_years=6)
        app = factory.application(factory.job(factory.recruiter()), candidate=candidate)

        summary = build_candidate_summary(session, app)

        assert summary.headline == "Go Engineer"
        assert summary.skills == ["Go"]
        assert summary.experience_years == 6


class TestRecruiterRelevance:

    @pytest.mark.asyncio
    async def test_generates_once_then_reuses(self, session, factory, fake_llm):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))

        first = await get_or_generate_recruiter_relevance(session, app.id, recruiter.id, fake_llm)
        fake_llm.assessment = RelevanceAssessment(match_percentage=10, recommendation="Changed")
        second = await get_or_generate_recruiter_relevance(session, app.id, recruiter.id, fake_llm)

        assert len(fake_llm.recruiter_calls) == 1
        assert first == second
        assert first.score == pytest.approx(0.82)
        assert first.feedback == "Worth interviewing."

    @pytest.mark.asyncio
    async def test_not_owned_application(self, session, factory, fake_llm):
        app = factory.application(factory.job(factory.recruiter()))
        other = factory.recruiter(name="Other")

        assert await get_or_generate_recruiter_relevance(session, app.id, other.id, fake_llm) is None
        assert fake_llm.recruiter_calls == []

    @pytest.mark.asyncio
    async def test_generation_failure_stores_nothing(self, session, factory, fake_llm):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))

        async def no_output(candidate, job):
            return None
        fake_llm.generate_recruiter_relevance = no_output

        assert await get_or_generate_recruiter_relevance(session, app.id, recruiter.id, fake_llm) is None
        assert session.exec(select(RecruiterRelevance)).all() == []

    @pytest.mark.asyncio
    async def test_concurrent_insert_wins(self, session, engine, factory, fake_llm):
        recruiter = factory.recruiter()
        app = factory.application(factory.job(recruiter))

        async def racing_generator(candidate, job):
            # Another request stores its assessment while this one is generating
            with Session(engine) as other:
                other.add(RecruiterRelevance(
                    application_id=app.id, recruiter_id=recruiter.id,
                    score=0.5, feedback="Stored first", strengths=[], gaps=[],
                ))
                other.commit()
            return fake_llm.assessment
        fake_llm.generate_recruiter_relevance = racing_generator

        result = await get_or_generate_recruiter_relevance(session, app.id, recruiter.id, fake_llm)

        assert result.feedback == "Stored first"
        assert len(session.exec(select(RecruiterRelevance)).all()) == 1


class TestScoreApplication:

    @pytest.mark.asyncio
    async def test_scores_new_application(self, session, engine, factory, fake_llm):
        app = factory.application(factory.job(factory.recruiter()))

        await score_application(app.id, fake_llm, engine)

        session.refresh(app)
        assert app.relevance_score == pytest.approx(0.82)
        assert app.match_analysis == {
            "feedback": "Worth interviewing.",
            "strengths": ["Strong React experience"],
            "gaps": ["No Go experience"],
        }

    @pytest.mark.asyncio
    async def test_existing_score_is_kept(self, session, engine, factory, fake_llm):
        app = factory.application(factory.job(factory.recruiter()), score=0.3)

        await score_application(app.id, fake_llm, engine)

        session.refresh(app)
        assert app.relevance_score == 0.3
        assert fake_llm.candidate_calls == []

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self, session, engine, factory, fake_llm):
        app = factory.application(factory.job(factory.recruiter()))

        async def broken(resume, job):
            raise RuntimeError("model unavailable")
        fake_llm.generate_candidate_relevance = broken

        await score_application(app.id, fake_llm, engine)

        session.refresh(app)
        assert app.relevance_score is None

    @pytest.mark.asyncio
    async def test_missing_application(self, engine, fake_llm):
        await score_application("missing", fake_llm, engine)
        assert fake_llm.candidate_calls == []
