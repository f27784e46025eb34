import io
import json
from typing import Any, Callable, Dict, List, Optional

import google.generativeai as genai
from pydantic import BaseModel, ValidationError
from pypdf import PdfReader

from hackhyre.config import GEMINI_API_KEY, GEMINI_MODEL
from hackhyre.constants import (
    CANDIDATE_RELEVANCE_PROMPT,
    JOB_DESCRIPTION_PARSE_PROMPT,
    RECRUITER_RELEVANCE_PROMPT,
    RESUME_EXTRACTION_PROMPT,
)
from hackhyre.log import get_logger
from hackhyre.schemas import (
    CandidateSummary,
    JobDraft,
    JobSummary,
    ParsedResume,
    RelevanceAssessment,
)

logger = get_logger(__name__)


def extract_pdf_text(file_contents: bytes) -> str:
    '''
    Extract text from PDF bytes. Returns an empty string for unreadable files.

    Args:
        file_contents (bytes): PDF file content in bytes.

    returns: str
    '''
    try:
        reader = PdfReader(io.BytesIO(file_contents))
        return "\n".join([page.extract_text() or "" for page in reader.pages]).strip()
    except Exception as e:
        logger.warning("PDF parse failed: %s", e)
        return ""


def _join(values: List[str], sep: str = ", ") -> str:
    return sep.join(values) if values else "None listed"


def format_relevance_message(candidate: CandidateSummary, job: JobSummary) -> str:
    """
    Renders the candidate and job summaries sent to the relevance prompts.

    Args:
        candidate (CandidateSummary): Candidate profile summary.
        job (JobSummary): Job listing summary.
    Returns:
        str: The user message.
    """
    candidate_lines = []
    if candidate.name:
        candidate_lines.append(f"- Name: {candidate.name}")
    candidate_lines += [
        f"- Headline: {candidate.headline or 'Not specified'}",
        f"- Summary: {candidate.bio or 'Not specified'}",
        f"- Skills: {_join(candidate.skills)}",
        f"- Years of Experience: {candidate.experience_years if candidate.experience_years is not None else 'Unknown'}",
        f"- Location: {candidate.location or 'Not specified'}",
    ]

    job_location = job.location or "Not specified"
    if job.is_remote:
        job_location += " (Remote)"

    job_lines = [
        f"- Title: {job.title}",
        f"- Company: {job.company or 'Unknown'}",
        f"- Description: {job.description}",
        f"- Required Skills: {_join(job.skills)}",
        f"- Requirements: {_join(job.requirements, '; ')}",
        f"- Experience Level: {job.experience_level}",
        f"- Location: {job_location}",
        f"- Employment Type: {job.employment_type}",
    ]

    return "\n\n".join([
        "## Candidate Profile\n" + "\n".join(candidate_lines),
        "## Job Listing\n" + "\n".join(job_lines),
    ])


class LLMClient:
    """
    Gemini client for relevance scoring, resume parsing and the job-creation chat.
    """

    def __init__(self):
        try:
            genai.configure(api_key=GEMINI_API_KEY)
            self.model = genai.GenerativeModel(
                GEMINI_MODEL,
                generation_config={"response_mime_type": "application/json"},
            )
        except Exception as e:
            logger.error("Error configuring Gemini API: %s", e)
            self.model = None

    async def _generate_json(self, parts: List[Any]) -> Optional[Dict[str, Any]]:
        if not self.model:
            logger.error("Gemini API is not configured.")
            return None

        try:
            response = await self.model.generate_content_async(parts)
            return json.loads(response.text)
        except Exception as e:
            logger.error("LLM Error: %s", e)
            return None

    def _generate_json_sync(self, parts: List[Any]) -> Optional[Dict[str, Any]]:
        if not self.model:
            logger.error("Gemini API is not configured.")
            return None

        try:
            response = self.model.generate_content(parts)
            return json.loads(response.text)
        except Exception as e:
            logger.error("LLM Error: %s", e)
            return None

    @staticmethod
    def _validate(data: Optional[Dict[str, Any]], schema: type) -> Optional[BaseModel]:
        if data is None:
            return None
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            logger.error("LLM output failed %s validation: %s", schema.__name__, e)
            return None

    async def _generate_structured(self, parts: List[Any], schema: type) -> Optional[BaseModel]:
        return self._validate(await self._generate_json(parts), schema)

    async def generate_recruiter_relevance(
            self,
            candidate: CandidateSummary,
            job: JobSummary,
        ) -> Optional[RelevanceAssessment]:
        """
        Assesses a candidate against a job from the recruiter's perspective.
        Args:
            candidate (CandidateSummary): Candidate profile summary.
            job (JobSummary): Job listing summary.
        Returns:
            Optional[RelevanceAssessment]: Validated assessment, or None on any failure.
        """
        user_message = format_relevance_message(candidate, job)
        return await self._generate_structured([RECRUITER_RELEVANCE_PROMPT, user_message], RelevanceAssessment)

    async def generate_candidate_relevance(
            self,
            resume: CandidateSummary,
            job: JobSummary,
        ) -> Optional[RelevanceAssessment]:
        """
        Assesses a job listing for a job seeker.
        Args:
            resume (CandidateSummary): The job seeker's parsed resume data.
            job (JobSummary): Job listing summary.
        Returns:
            Optional[RelevanceAssessment]: Validated assessment, or None on any failure.
        """
        user_message = format_relevance_message(resume, job)
        return await self._generate_structured([CANDIDATE_RELEVANCE_PROMPT, user_message], RelevanceAssessment)

    async def parse_resume(self, content: bytes, mime_type: str) -> Optional[ParsedResume]:
        """
        Extracts profile fields from an uploaded resume.

        PDFs are converted to text locally; Word documents go to the model as inline data.
        Args:
            content (bytes): Uploaded file bytes.
            mime_type (str): The file's content type.
        Returns:
            Optional[ParsedResume]: Extracted profile, or None on any failure.
        """
        if mime_type == "application/pdf":
            text = extract_pdf_text(content)
            if not text:
                return None
            parts = [RESUME_EXTRACTION_PROMPT, f"--- RESUME ---\n{text}"]
        else:
            parts = [RESUME_EXTRACTION_PROMPT, {"mime_type": mime_type, "data": content}]
        return await self._generate_structured(parts, ParsedResume)

    def parse_job_description(self, text: str) -> Optional[JobDraft]:
        '''
        Structured fields from a pasted job description. Blocking; called from
        inside the job-creation chat's tool loop.
        '''
        data = self._generate_json_sync([JOB_DESCRIPTION_PARSE_PROMPT, f"--- JOB DESCRIPTION ---\n{text}"])
        return self._validate(data, JobDraft)

    def start_chat(
            self,
            system_instruction: str,
            tools: List[Callable],
            history: List[Dict[str, Any]],
        ):
        """
        Opens a Gemini chat session with automatic function calling over the given tools.
        Args:
            system_instruction (str): System prompt.
            tools (List[Callable]): Plain Python functions exposed as tools.
            history (List[Dict[str, Any]]): Prior turns as {"role", "parts"} dicts.
        Returns:
            genai.ChatSession
        """
        model = genai.GenerativeModel(
            GEMINI_MODEL,
            system_instruction=system_instruction,
            tools=tools,
        )
        return model.start_chat(history=history, enable_automatic_function_calling=True)
