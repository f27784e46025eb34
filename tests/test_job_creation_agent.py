"""Tests for the conversational job-creation assistant."""

import inspect
from types import SimpleNamespace

from sqlmodel import select

from hackhyre.constants import MAX_AGENT_TOOL_STEPS
from hackhyre.models import Company, EmploymentType, Job, JobStatus
from hackhyre.schemas import ChatMessage
from hackhyre.services.job_creation_agent import (
    JobCreationTools,
    build_job_creation_system_prompt,
    run_job_creation_chat,
    to_gemini_history,
)


class ScriptedChat:
    """Plays the model's side: calls the given tools, then answers with text."""

    def __init__(self, script, reply="Done!"):
        self.script = script
        self.reply = reply
        self.sent = []

    def send_message(self, content):
        self.sent.append(content)
        for name, kwargs in self.script:
            self.tools[name](**kwargs)
        return SimpleNamespace(text=self.reply)


class OverloadedChat:
    """Model side that fails before answering."""

    def send_message(self, content):
        raise RuntimeError("503 The model is overloaded")


class TestSystemPrompt:

    def test_no_company(self):
        prompt = build_job_creation_system_prompt("Grace", [])
        assert "No company found" in prompt
        assert "helping Grace" in prompt

    def test_single_company(self):
        acme = Company(id="c1", name="Acme", website="https://acme.test", created_by="u")
        prompt = build_job_creation_system_prompt("Grace", [acme])
        assert "one company: **Acme** (https://acme.test) (id: `c1`)" in prompt

    def test_several_companies(self):
        companies = [
            Company(id="c1", name="Acme", created_by="u"),
            Company(id="c2", name="Globex", created_by="u"),
        ]
        prompt = build_job_creation_system_prompt("Grace", companies)
        assert "multiple companies" in prompt
        assert "- **Acme** - id: `c1`" in prompt
        assert "- **Globex** - id: `c2`" in prompt


class TestTools:

    def _tools(self, session, factory, fake_llm):
        recruiter = factory.recruiter()
        tools = JobCreationTools(session, recruiter.id, fake_llm)
        return recruiter, tools, {fn.__name__: fn for fn in tools.functions()}

    def test_exposes_expected_tools(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)
        assert set(fns) == {
            "get_recruiter_companies", "create_company", "update_job_draft",
            "save_job", "parse_job_description", "mark_job_creation_complete",
        }

    def test_create_company_then_list(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)

        created = fns["create_company"](name="Acme", website="https://acme.test")
        listed = fns["get_recruiter_companies"]()

        assert created["success"]
        assert listed["companies"] == [{"id": created["company_id"], "name": "Acme", "website": "https://acme.test"}]

    def test_update_draft_keeps_only_collected_fields(self, session, factory, fake_llm):
        _, tools, fns = self._tools(session, factory, fake_llm)

        fns["update_job_draft"](title="Backend Engineer", employment_type="full_time", experience_level="guru")

        assert tools.draft.title == "Backend Engineer"
        assert tools.draft.employment_type == EmploymentType.full_time
        assert tools.draft.experience_level is None
        assert tools.draft.skills is None

    def test_save_job_as_draft_or_published(self, session, factory, fake_llm):
        recruiter, tools, fns = self._tools(session, factory, fake_llm)
        company = factory.company(recruiter)

        draft = fns["save_job"](
            title="Backend Engineer", description="APIs", employment_type="full_time",
            experience_level="senior", company_id=company.id, skills=["Go"],
        )
        live = fns["save_job"](
            title="Designer", description="UI", employment_type="contract",
            experience_level="mid", publish=True,
        )

        assert session.get(Job, draft["job_id"]).status == JobStatus.draft
        assert session.get(Job, live["job_id"]).status == JobStatus.open
        assert session.get(Job, draft["job_id"]).slug.startswith("backend-engineer-")
        assert tools.saved_job_id == live["job_id"]

    def test_save_job_rejects_foreign_company(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)
        foreign = factory.company(factory.recruiter(name="Other"))

        result = fns["save_job"](
            title="X", description="Y", employment_type="full_time",
            experience_level="mid", company_id=foreign.id,
        )

        assert not result["success"]
        assert session.exec(select(Job)).all() == []

    def test_save_job_rejects_unknown_enum(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)
        result = fns["save_job"](title="X", description="Y", employment_type="gig", experience_level="mid")
        assert not result["success"]

    def test_parse_job_description_updates_draft(self, session, factory, fake_llm):
        _, tools, fns = self._tools(session, factory, fake_llm)

        result = fns["parse_job_description"](text="We need a Go backend engineer")

        assert result["success"]
        assert tools.draft.title == "Backend Engineer"

    def test_step_limit(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)

        for _ in range(MAX_AGENT_TOOL_STEPS):
            assert "companies" in fns["get_recruiter_companies"]()
        assert "error" in fns["get_recruiter_companies"]()

    def test_list_fields_default_to_none(self, session, factory, fake_llm):
        _, _, fns = self._tools(session, factory, fake_llm)
        for name in ("update_job_draft", "save_job"):
            params = inspect.signature(fns[name]).parameters
            assert all(params[p].default is None for p in ("requirements", "responsibilities", "skills"))

        fns["save_job"](title="QA", description="Tests", employment_type="contract", experience_level="mid")
        fns["save_job"](title="QA Lead", description="Tests", employment_type="contract", experience_level="lead")

        jobs = session.exec(select(Job)).all()
        assert len(jobs) == 2
        assert all(j.skills == [] and j.requirements == [] and j.responsibilities == [] for j in jobs)


class TestRunChat:

    def test_history_roles(self):
        history = to_gemini_history([
            ChatMessage(role="user", content="Hi"),
            ChatMessage(role="assistant", content="Hello"),
        ])
        assert history == [
            {"role": "user", "parts": ["Hi"]},
            {"role": "model", "parts": ["Hello"]},
        ]

    def test_full_turn(self, session, factory, fake_llm):
        recruiter = factory.recruiter(name="Grace")
        company = factory.company(recruiter, name="Acme")
        fake_llm.chat = ScriptedChat([
            ("save_job", dict(
                title="Backend Engineer", description="APIs", employment_type="full_time",
                experience_level="senior", company_id=company.id, publish=True,
            )),
        ], reply="Your job is live.")
        # The scripted chat needs the saved id to finish the conversation
        original_send = fake_llm.chat.send_message

        def send_and_complete(content):
            response = original_send(content)
            job = session.exec(select(Job)).one()
            fake_llm.chat.tools["mark_job_creation_complete"](job_id=job.id)
            return response
        fake_llm.chat.send_message = send_and_complete

        messages = [
            ChatMessage(role="user", content="I want to post a job"),
            ChatMessage(role="assistant", content="Which company?"),
            ChatMessage(role="user", content="Acme, publish it"),
        ]
        reply = run_job_creation_chat(session, recruiter, messages, fake_llm)

        assert reply.reply == "Your job is live."
        assert reply.completed
        assert reply.saved_job_id == session.exec(select(Job)).one().id
        assert "one company: **Acme**" in fake_llm.chat.system_instruction
        assert fake_llm.chat.history[-1] == {"role": "model", "parts": ["Which company?"]}
        assert fake_llm.chat.sent == ["Acme, publish it"]

    def test_reply_without_text(self, session, factory, fake_llm):
        class ToolOnlyResponse:
            @property
            def text(self):
                raise ValueError("no text part")

        chat = ScriptedChat([])
        chat.send_message = lambda content: ToolOnlyResponse()
        fake_llm.chat = chat

        reply = run_job_creation_chat(
            session, factory.recruiter(), [ChatMessage(role="user", content="hi")], fake_llm
        )
        assert reply.reply == ""
        assert reply.saved_job_id is None

    def test_model_failure_is_reported(self, session, factory, fake_llm):
        fake_llm.chat = OverloadedChat()

        reply = run_job_creation_chat(
            session, factory.recruiter(), [ChatMessage(role="user", content="hi")], fake_llm
        )
        assert reply.reply == ""
        assert "overloaded" in reply.error
        assert reply.saved_job_id is None
