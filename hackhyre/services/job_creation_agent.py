import re
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlmodel import Session, select

from hackhyre.constants import MAX_AGENT_TOOL_STEPS
from hackhyre.log import get_logger
from hackhyre.models import Company, EmploymentType, ExperienceLevel, Job, JobStatus, User
from hackhyre.schemas import ChatMessage, ChatReply, JobDraft
from hackhyre.services.llm_client import LLMClient

logger = get_logger(__name__)


def build_job_creation_system_prompt(user_name: str, companies: Sequence[Company]) -> str:
    """
    System prompt for the conversational job-creation assistant.

    The company paragraph depends on how many companies the recruiter already has.
    Args:
        user_name (str): The recruiter's display name.
        companies (Sequence[Company]): The recruiter's companies, oldest first.
    Returns:
        str: The system prompt.
    """
    if not companies:
        company_context = (
            "No company found for this recruiter. Ask them for the company name "
            "(and optionally website/description), then call `create_company` to set one up before proceeding."
        )
    elif len(companies) == 1:
        c = companies[0]
        website = f" ({c.website})" if c.website else ""
        company_context = (
            f"The recruiter has one company: **{c.name}**{website} (id: `{c.id}`). "
            "Confirm this is the company they want to post under. "
            "If they want a different company, call `create_company` to create it."
        )
    else:
        listing = "\n".join(
            f"- **{c.name}**{f' ({c.website})' if c.website else ''} - id: `{c.id}`" for c in companies
        )
        company_context = (
            f"The recruiter has multiple companies:\n{listing}\n\n"
            "Ask which company this job should be posted under. If they want a different company "
            "not listed, call `create_company` to create it. Pass the chosen `company_id` when saving."
        )

    return f"""You are **Hyre**, a professional recruiting assistant helping {user_name} create a job listing on HackHyre.

{company_context}

## Modes

### 1. Guided Conversation
Walk the recruiter through creating a job step by step. Collect:
1. **Company** - which company is this job for (if multiple)
2. **Job title** - e.g. "Senior Frontend Engineer"
3. **Description** - what the role involves
4. **Employment type** - full_time, part_time, contract, or internship
5. **Experience level** - entry, mid, senior, lead, or executive
6. **Location** - city/country, and whether it's remote-friendly
7. **Salary range** - min and max in USD (optional)
8. **Requirements** - what candidates need
9. **Responsibilities** - what the role entails
10. **Skills** - technical and soft skills
11. **Draft or publish** - save as draft or publish immediately

### 2. Paste and Parse
When the user pastes a job description, call `parse_job_description` to extract structured data.
Present the parsed result for confirmation, then save.

## Rules
- Start by calling `get_recruiter_companies` to fetch the recruiter's companies.
- Ask **ONE question at a time**. Keep it conversational and professional.
- After each piece of information is confirmed, call `update_job_draft` with ALL fields collected so far.
- Once you have enough information, summarize the full job listing and ask the user to confirm.
- Ask whether they want to save as **draft** or **publish** (go live immediately).
- After confirmation, call `save_job` with all the collected data (include `company_id`).
- After saving successfully, call `mark_job_creation_complete` with the returned job_id.
- Be concise. Never fabricate information. Only save what the user explicitly provides or confirms."""


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return f"{slug or 'job'}-{uuid.uuid4().hex[:6]}"


class JobCreationTools:
    """
    Tools exposed to the job-creation chat, bound to one recruiter and session.

    Also records what happened during the turn (latest draft, saved job) so the
    HTTP layer can update the live preview.
    """

    def __init__(self, session: Session, recruiter_id: str, llm: LLMClient):
        self.session = session
        self.recruiter_id = recruiter_id
        self.llm = llm
        self.draft: Optional[JobDraft] = None
        self.saved_job_id: Optional[str] = None
        self.completed = False
        self.steps = 0

    def _step(self) -> bool:
        self.steps += 1
        return self.steps <= MAX_AGENT_TOOL_STEPS

    def _limit_reached(self) -> Dict[str, Any]:
        return {"error": "Tool step limit reached. Reply to the recruiter without calling more tools."}

    def list_companies(self) -> List[Company]:
        return self.session.exec(
            select(Company).where(Company.created_by == self.recruiter_id).order_by(Company.created_at.asc())
        ).all()

    def functions(self) -> List[Callable]:
        tools = self

        def get_recruiter_companies() -> dict:
            """Fetch the companies this recruiter can post jobs under."""
            if not tools._step():
                return tools._limit_reached()
            return {
                "companies": [
                    {"id": c.id, "name": c.name, "website": c.website} for c in tools.list_companies()
                ]
            }

        def create_company(name: str, website: str = "", description: str = "") -> dict:
            """Create a new company for the recruiter. Use the returned company_id when saving the job."""
            if not tools._step():
                return tools._limit_reached()
            return tools.create_company(name, website or None, description or None)

        def update_job_draft(
            title: str = "",
            description: str = "",
            employment_type: str = "",
            experience_level: str = "",
            location: str = "",
            is_remote: bool = False,
            salary_min: int = 0,
            salary_max: int = 0,
            salary_currency: str = "",
            requirements: Optional[List[str]] = None,
            responsibilities: Optional[List[str]] = None,
            skills: Optional[List[str]] = None,
        ) -> dict:
            """Update the live job preview with ALL fields collected so far, not just the new one."""
            if not tools._step():
                return tools._limit_reached()
            return tools.update_job_draft(locals())

        def save_job(
            title: str,
            description: str,
            employment_type: str,
            experience_level: str,
            company_id: str = "",
            location: str = "",
            is_remote: bool = False,
            salary_min: int = 0,
            salary_max: int = 0,
            salary_currency: str = "USD",
            requirements: Optional[List[str]] = None,
            responsibilities: Optional[List[str]] = None,
            skills: Optional[List[str]] = None,
            publish: bool = False,
        ) -> dict:
            """Save the confirmed job listing, as a draft or published when publish is true."""
            if not tools._step():
                return tools._limit_reached()
            return tools.save_job(locals())

        def parse_job_description(text: str) -> dict:
            """Extract structured job fields from a pasted job description."""
            if not tools._step():
                return tools._limit_reached()
            return tools.parse_job_description(text)

        def mark_job_creation_complete(job_id: str) -> dict:
            """Signal that the job was saved and the conversation is done."""
            if not tools._step():
                return tools._limit_reached()
            tools.completed = job_id == tools.saved_job_id
            return {"completed": tools.completed}

        return [
            get_recruiter_companies,
            create_company,
            update_job_draft,
            save_job,
            parse_job_description,
            mark_job_creation_complete,
        ]

    def create_company(self, name: str, website: Optional[str], description: Optional[str]) -> Dict[str, Any]:
        company = Company(name=name, website=website, description=description, created_by=self.recruiter_id)
        self.session.add(company)
        self.session.commit()
        self.session.refresh(company)
        logger.info("Recruiter %s created company %s", self.recruiter_id, company.id)
        return {
            "success": True,
            "company_id": company.id,
            "company_name": company.name,
            "message": f'Company "{name}" created successfully.',
        }

    def update_job_draft(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        # Empty values are "not collected yet"
        collected = {
            k: v for k, v in fields.items()
            if k in JobDraft.model_fields and (v not in ("", 0, None, []) or k == "is_remote")
        }
        for key in ("employment_type", "experience_level"):
            if key in collected and collected[key] not in _enum_values(key):
                collected.pop(key)
        self.draft = JobDraft(**collected)
        return {"updated": True, "draft": self.draft.model_dump(exclude_none=True, mode="json")}

    def save_job(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        try:
            employment_type = EmploymentType(fields["employment_type"])
            experience_level = ExperienceLevel(fields["experience_level"])
        except ValueError as e:
            return {"success": False, "error": str(e)}

        company_id = fields.get("company_id") or None
        if company_id and company_id not in {c.id for c in self.list_companies()}:
            return {"success": False, "error": "Unknown company_id for this recruiter."}

        job = Job(
            recruiter_id=self.recruiter_id,
            company_id=company_id,
            title=fields["title"],
            slug=slugify(fields["title"]),
            description=fields["description"],
            employment_type=employment_type,
            experience_level=experience_level,
            status=JobStatus.open if fields.get("publish") else JobStatus.draft,
            location=fields.get("location") or None,
            is_remote=bool(fields.get("is_remote")),
            salary_min=fields.get("salary_min") or None,
            salary_max=fields.get("salary_max") or None,
            salary_currency=fields.get("salary_currency") or "USD",
            requirements=list(fields.get("requirements") or []),
            responsibilities=list(fields.get("responsibilities") or []),
            skills=list(fields.get("skills") or []),
        )
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        self.saved_job_id = job.id
        logger.info("Recruiter %s saved job %s (%s)", self.recruiter_id, job.id, job.status.value)
        return {"success": True, "job_id": job.id, "status": job.status.value}

    def parse_job_description(self, text: str) -> Dict[str, Any]:
        parsed = self.llm.parse_job_description(text)
        if parsed is None:
            return {"success": False, "error": "Could not parse the job description."}
        self.draft = parsed
        return {"success": True, "draft": parsed.model_dump(exclude_none=True, mode="json")}


def _enum_values(key: str) -> set:
    enum = EmploymentType if key == "employment_type" else ExperienceLevel
    return {member.value for member in enum}


def to_gemini_history(messages: Sequence[ChatMessage]) -> List[Dict[str, Any]]:
    return [
        {"role": "user" if m.role == "user" else "model", "parts": [m.content]}
        for m in messages
    ]


def run_job_creation_chat(
    session: Session,
    recruiter: User,
    messages: Sequence[ChatMessage],
    llm: LLMClient,
) -> ChatReply:
    """
    Runs one turn of the job-creation conversation.

    Prior messages are replayed as history and the last (user) message is sent
    with automatic function calling over the recruiter-bound tools. Blocking;
    the HTTP layer runs it in a worker thread.

    Args:
        session (Session): Database session.
        recruiter (User): The signed-in recruiter.
        messages (Sequence[ChatMessage]): Full conversation, ending with the user's message.
        llm (LLMClient): Gemini client.
    Returns:
        ChatReply: Assistant text plus the latest draft and saved job, if any.
    """
    tools = JobCreationTools(session, recruiter.id, llm)
    system_prompt = build_job_creation_system_prompt(recruiter.name, tools.list_companies())

    reply = ""
    error = None
    try:
        chat = llm.start_chat(system_prompt, tools.functions(), to_gemini_history(messages[:-1]))
        response = chat.send_message(messages[-1].content)
    except Exception as e:
        logger.exception("Job-creation chat failed for recruiter %s", recruiter.id)
        error = f"The assistant is unavailable: {e}"
    else:
        try:
            reply = response.text
        except ValueError:
            # Response finished on a tool call with no text part
            reply = ""

    return ChatReply(
        reply=reply,
        draft=tools.draft,
        saved_job_id=tools.saved_job_id,
        completed=tools.completed,
        error=error,
    )
