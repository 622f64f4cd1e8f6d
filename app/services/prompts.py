from __future__ import annotations

RESUME_SYSTEM_PROMPT = (
    "You are an expert resume analyst and career coach. Analyze resumes against job descriptions "
    "and provide detailed, actionable feedback."
)

EMAIL_SYSTEM_PROMPT = (
    "You are an expert professional communication coach. Improve emails to be clear, professional, "
    "and effective for their intended purpose."
)

_ANALYSIS_PURPOSE_CONTEXT = {
    "before-applying": (
        "The candidate is preparing to apply for this position and wants to optimize their resume."
    ),
    "after-rejection": (
        "The candidate was rejected for this position and wants to understand how to improve their "
        "resume for similar roles."
    ),
}

EMAIL_PURPOSE_DESCRIPTIONS = {
    "job-followup": "following up on a job application",
    "apology": "apologizing professionally",
    "client-pitch": "pitching to a potential client",
    "meeting-request": "requesting a meeting",
    "thank-you": "expressing gratitude",
    "complaint": "addressing a concern or complaint",
    "networking": "networking and building professional relationships",
    "proposal": "presenting a business proposal",
    "general": "general professional communication",
}

_RESUME_TEMPLATE = """
{purpose_context}

Please analyze the following resume against the job description and provide a comprehensive analysis in the following JSON format:

{{
  "matchScore": <number between 0-100>,
  "missingKeywords": ["keyword1", "keyword2", ...],
  "suggestions": ["suggestion1", "suggestion2", ...],
  "rewriteExamples": [
    {{
      "original": "original text from resume",
      "improved": "improved version"
    }}
  ],
  "overallFeedback": "detailed overall assessment",
  "coverLetter": "professionally written cover letter tailored to this job",
  "atsScore": <number between 0-100>,
  "atsOptimizations": ["ats optimization1", "ats optimization2", ...]
}}

**Job Description:**
{job_description}

**Resume Content:**
{resume_text}

**Analysis Requirements:**
1. Calculate a match score (0-100) based on how well the resume aligns with the job requirements
2. Identify 3-7 missing keywords or skills that are mentioned in the job description but not in the resume
3. Provide 4-6 specific, actionable suggestions for improvement
4. Give 2-3 concrete rewrite examples showing how to improve specific sections
5. Provide overall feedback that is constructive and specific
6. Generate a professional cover letter (200-300 words) tailored to this specific job and the candidate's background
7. Calculate an ATS (Applicant Tracking System) score (0-100) based on keyword density, formatting, and structure
8. Provide 3-5 specific ATS optimization recommendations

Please ensure your response is valid JSON and focuses on practical, actionable advice."""

_EMAIL_TEMPLATE = """
Please improve the following email for {purpose_description}. Provide your response in the following JSON format:

{{
  "improvedEmail": "the improved email content",
  "explanation": "explanation of what was improved and why",
  "improvements": ["improvement1", "improvement2", ...],
  "tone": "description of the tone used",
  "professionalismScore": <number between 0-100>,
  "clarityScore": <number between 0-100>,
  "effectivenessScore": <number between 0-100>
}}

**Original Email:**
{email_draft}

**Improvement Requirements:**
1. Make the email clear, concise, and professional
2. Ensure the tone is appropriate for {purpose_description}
3. Improve structure and flow
4. Fix any grammar or spelling issues
5. Make the message more effective for its purpose
6. Add appropriate subject line if missing
7. Ensure proper email etiquette
8. Score the improved email on professionalism (0-100)
9. Score the improved email on clarity (0-100)
10. Score the improved email on effectiveness for its purpose (0-100)

Please provide specific improvements and explain your changes."""


def build_resume_prompt(*, resume_text: str, job_description: str, purpose: str) -> str:
    return _RESUME_TEMPLATE.format(
        purpose_context=_ANALYSIS_PURPOSE_CONTEXT.get(purpose, _ANALYSIS_PURPOSE_CONTEXT["after-rejection"]),
        job_description=job_description,
        resume_text=resume_text,
    )


def build_email_prompt(*, email_draft: str, purpose: str) -> str:
    return _EMAIL_TEMPLATE.format(
        purpose_description=EMAIL_PURPOSE_DESCRIPTIONS.get(purpose, "professional communication"),
        email_draft=email_draft,
    )
