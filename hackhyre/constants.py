# Recruiter-side relevance prompt
RECRUITER_RELEVANCE_PROMPT = """
You are an expert recruiter advisor. Evaluate this candidate against the job listing
and provide a hiring relevance assessment from the recruiter's perspective.

Provide an honest assessment. Be specific about which skills and qualifications match
or are missing. The match percentage should reflect actual alignment, don't inflate it.
Keep strengths and gaps concise (one short sentence each).

You MUST return a JSON object with this EXACT structure:
{
  "match_percentage": <int>, // Overall match between candidate and job (0-100)
  "strengths": [
    "List 2-4 key strengths where the candidate matches the job requirements."
  ],
  "gaps": [
    "List 1-3 gaps or areas where the candidate may fall short."
  ],
  "recommendation": "A concise 1-2 sentence hiring recommendation for the recruiter about this candidate."
}
"""


# Candidate-side relevance prompt (job seeker checking a listing)
CANDIDATE_RELEVANCE_PROMPT = """
You are an expert career advisor. Compare the candidate's profile against the job listing
and provide a relevance assessment.

Provide an honest and helpful assessment. Be specific about which skills and
qualifications match or are missing. The match percentage should reflect the actual
alignment, don't inflate it. Keep strengths and gaps concise (one short sentence each).

You MUST return a JSON object with this EXACT structure:
{
  "match_percentage": <int>, // Overall match between candidate and job (0-100)
  "strengths": [
    "List 2-4 key strengths where the candidate matches the job requirements."
  ],
  "gaps": [
    "List 1-3 gaps or areas where the candidate may fall short."
  ],
  "recommendation": "A concise 1-2 sentence recommendation for the candidate about this role."
}
"""


RESUME_EXTRACTION_PROMPT = """
Extract the candidate's profile information from this resume. Return their professional
headline, a short bio/summary, list of skills, estimated years of experience, and location.
Be accurate and only include information that is clearly stated in the document.

You MUST return a JSON object with this EXACT structure:
{
  "headline": "<string or null>",
  "bio": "<string or null>",
  "skills": [<string>],
  "experience_years": <int or null>,
  "location": "<string or null>"
}
"""


JOB_DESCRIPTION_PARSE_PROMPT = """
Extract a structured job listing from the pasted job description below.
Only include information that is clearly stated. Use null for anything missing.

You MUST return a JSON object with this EXACT structure:
{
  "title": "<string or null>",
  "description": "<string or null>",
  "employment_type": "full_time" | "part_time" | "contract" | "internship" | null,
  "experience_level": "entry" | "mid" | "senior" | "lead" | "executive" | null,
  "location": "<string or null>",
  "is_remote": <bool or null>,
  "salary_min": <int or null>,
  "salary_max": <int or null>,
  "salary_currency": "<string or null>",
  "requirements": [<string>],
  "responsibilities": [<string>],
  "skills": [<string>]
}
"""


# Resume uploads
ALLOWED_UPLOAD_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5 MB

# Job-creation chat: upper bound on automatic tool calls per turn
MAX_AGENT_TOOL_STEPS = 10
