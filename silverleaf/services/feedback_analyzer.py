"""
Feedback Analyzer
=================
Grades a batch of student submissions against a rubric with an LLM and turns
each free-text reply into a score, issue count, strengths and improvements.

Pipeline, once per submission and strictly sequential:

    build_grading_request -> build_grading_prompt -> llm_service.generate_text
        -> extract_analysis -> aggregate

The score is advisory feedback for the professor, not an official grade.
"""
import re
import json
import math
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from . import llm_service

logger = logging.getLogger(__name__)

# Input caps (characters); truncation is a silent prefix take
SUBMISSION_CHAR_LIMIT = 6000
FIELD_CHAR_LIMIT = 3000

FALLBACK_SCORE = 78
MAX_LIST_ITEMS = 3
MIN_ITEM_LENGTH = 4

DEFAULT_STRENGTHS = ["Clear explanation", "Good effort", "Solid structure"]
DEFAULT_IMPROVEMENTS = ["Needs deeper analysis", "Provide examples", "Improve clarity"]

# Batch-level summary lists returned alongside per-student results
BATCH_STRENGTHS = ["Good participation", "Effort shown", "Improving academic depth"]
BATCH_IMPROVEMENTS = ["More explanation needed", "Add examples", "Improve clarity"]


# =============================================================================
# DATA MODEL
# =============================================================================

class GradingRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    assignment_name: str
    rubric_text: str
    syllabus_excerpt: str
    student_name: str
    student_id: str
    submission_text: str


class ExtractedAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    issue_count: int
    strengths: List[str]
    improvements: List[str]
    raw_feedback: str


class StudentAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_name: str
    student_id: str
    analysis: ExtractedAnalysis

    def to_dict(self) -> dict:
        """Wire shape expected by the feedback analyzer UI."""
        return {
            "studentName": self.student_name,
            "studentId": self.student_id,
            "score": self.analysis.score,
            "feedback": self.analysis.raw_feedback,
            "errorsMarked": self.analysis.issue_count,
            "strengths": list(self.analysis.strengths),
            "improvements": list(self.analysis.improvements),
        }


class BatchSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int
    per_submission: List[StudentAnalysis]

    def to_dict(self) -> dict:
        return {
            "overallScore": self.overall_score,
            "strengths": list(BATCH_STRENGTHS),
            "improvements": list(BATCH_IMPROVEMENTS),
            "studentScores": [s.to_dict() for s in self.per_submission],
        }


class AnalysisPayload(BaseModel):
    """Optional strict reply shape: a JSON object the model may emit instead of prose."""
    model_config = ConfigDict(allow_inf_nan=False)

    score: float
    issues_detected: Optional[int] = None
    strengths: List[str] = []
    improvements: List[str] = []
    overall_feedback: str = ""


# =============================================================================
# PROMPT BUILDER
# =============================================================================

def _trim(value, limit: int = FIELD_CHAR_LIMIT) -> str:
    return value[:limit] if isinstance(value, str) else ""


def format_rubric(rubric) -> str:
    """
    Render rubric input as prompt text.

    Accepts a ready string or a list of stored criteria
    ({criterion_name, weight, description, indicators}).
    """
    if isinstance(rubric, str):
        return rubric
    if not isinstance(rubric, list):
        return ""

    lines = []
    for criterion in rubric:
        if isinstance(criterion, str):
            lines.append(f"- {criterion}")
            continue
        if not isinstance(criterion, dict):
            continue
        name = criterion.get("criterion_name") or criterion.get("name") or "Criterion"
        weight = criterion.get("weight")
        header = f"- {name} ({weight}%)" if weight else f"- {name}"
        description = criterion.get("description", "")
        lines.append(f"{header}: {description}" if description else header)
        for indicator in criterion.get("indicators") or []:
            lines.append(f"    * {indicator}")
    return "\n".join(lines)


def build_grading_request(assignment_name, rubric, syllabus, submission: dict) -> GradingRequest:
    """Build a capped GradingRequest from raw route input."""
    if not isinstance(submission, dict):
        submission = {}
    text = submission.get("submissionText")
    if text is None:
        text = submission.get("content", "")
    return GradingRequest(
        assignment_name=_trim(assignment_name),
        rubric_text=_trim(format_rubric(rubric)),
        syllabus_excerpt=_trim(syllabus),
        student_name=_trim(str(submission.get("studentName") or submission.get("student_name") or "")),
        student_id=_trim(str(submission.get("studentId") or submission.get("student_id") or "")),
        submission_text=_trim(text, SUBMISSION_CHAR_LIMIT),
    )


def build_grading_prompt(request: GradingRequest) -> str:
    """Assemble the fixed grading instruction for one submission."""
    return f"""
You are a teaching assistant supporting a university professor.
Review and analyze the student assignment below, providing helpful,
constructive, syllabus-aligned feedback.

You are NOT assigning the official grade; your evaluation helps both
the professor and the student.

====================
ASSIGNMENT INFORMATION
====================
{request.assignment_name}

====================
RUBRIC (used to guide analysis)
====================
{request.rubric_text}

====================
COURSE SYLLABUS CONTEXT
====================
{request.syllabus_excerpt}

====================
STUDENT SUBMISSION
====================
Name: {request.student_name}
ID: {request.student_id}

{request.submission_text}

====================
FEEDBACK GUIDELINES
====================
1. Use the rubric to analyze quality and completeness.
2. Highlight strengths in student understanding and writing.
3. Identify weaknesses, missing details, or rubric violations.
4. Count meaningful issues (clarity, logic gaps, formatting, incorrect facts).
5. Keep a supportive, professional tone.
6. Give a feedback score from 0-100 ONLY as an indicator (not an official grade).
7. Write feedback the professor can use directly.

====================
OUTPUT FORMAT (STRICT)
====================
Feedback Evaluation:
- <criterion>: <analysis and supportive justification>

Estimated Score (0-100): <number>

Issues Detected (<number>):
- <issue 1>
- <issue 2>

Strengths (3):
- <strength 1>
- <strength 2>
- <strength 3>

Areas for Improvement (3):
- <improvement 1>
- <improvement 2>
- <improvement 3>

Overall Feedback:
<supportive, detailed academic feedback paragraph>
"""


# =============================================================================
# RESPONSE EXTRACTOR
# =============================================================================

_RANGE_LABEL = r'\(?\s*0\s*[-–—]\s*100\s*\)?'

# (pattern, multiplier); first match wins
SCORE_PATTERNS = [
    (re.compile(r'Estimated Score\s*' + _RANGE_LABEL + r'\s*:?\s*(\d{1,3})', re.I), 1),
    (re.compile(r'Estimated Score(?:\s*' + _RANGE_LABEL + r')?[^\d\n]*(\d{1,3})', re.I), 1),
    (re.compile(r'\bScore\s*(?:' + _RANGE_LABEL + r')?\s*:\s*(\d{1,3})', re.I), 1),
    (re.compile(r'Final Score[^\d\n]*(\d{1,3})', re.I), 1),
    (re.compile(r'(?<!\d)(\d{1,2})\s*/\s*10(?!\d)'), 10),
    (re.compile(r'(\d{1,3})\s*out of\s*100', re.I), 1),
    (re.compile(r'(\d{1,3})\s*%'), 1),
]

ISSUES_PATTERN = re.compile(r'Issues Detected[^\d\n]*(\d+)', re.I)

# A bulleted "- Strengths of ..." line is an evaluation entry, not a header
_STRENGTHS_HEADER = re.compile(r'^[*#\s]*Strengths\b[^\n:]*:?', re.I | re.M)
_IMPROVEMENTS_HEADER = re.compile(r'^[*#\s]*Areas for Improvement\b[^\n:]*:?', re.I | re.M)
_OVERALL_HEADER = re.compile(r'^[*#\s]*Overall Feedback\b', re.I | re.M)

_BULLET_PREFIX = re.compile(r'^\s*(?:[-*•]+|\d+[.)])\s*')


def clamp_score(value) -> int:
    return int(min(100, max(0, round(value))))


def extract_score(text: str) -> int:
    """Score from the first matching pattern, clamped; FALLBACK_SCORE if none match."""
    for pattern, multiplier in SCORE_PATTERNS:
        match = pattern.search(text)
        if match:
            return clamp_score(int(match.group(1)) * multiplier)
    logger.debug("No score pattern matched; using fallback %d. Preview: %s", FALLBACK_SCORE, text[:200])
    return FALLBACK_SCORE


def _section(text: str, header, end_headers) -> Optional[str]:
    match = header.search(text)
    if not match:
        return None
    rest = text[match.end():]
    end = len(rest)
    for end_header in end_headers:
        end_match = end_header.search(rest)
        if end_match and end_match.start() < end:
            end = end_match.start()
    return rest[:end]


def split_items(span: str) -> List[str]:
    """Split a bullet section into at most three trimmed items of 4+ characters."""
    items = []
    for piece in re.split(r'\n|•', span):
        item = _BULLET_PREFIX.sub('', piece).strip().strip('*').strip()
        if len(item) >= MIN_ITEM_LENGTH:
            items.append(item)
        if len(items) == MAX_LIST_ITEMS:
            break
    return items


def extract_strengths(text: str) -> List[str]:
    span = _section(text, _STRENGTHS_HEADER, [_IMPROVEMENTS_HEADER, _OVERALL_HEADER])
    items = split_items(span) if span else []
    return items or list(DEFAULT_STRENGTHS)


def extract_improvements(text: str) -> List[str]:
    span = _section(text, _IMPROVEMENTS_HEADER, [_OVERALL_HEADER])
    items = split_items(span) if span else []
    return items or list(DEFAULT_IMPROVEMENTS)


def extract_issue_count(text: str, improvements: List[str]) -> int:
    """Explicit "Issues Detected (N)" count, else the number of improvements found."""
    match = ISSUES_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return len(improvements)


def _clean_items(items: List[str], defaults: List[str]) -> List[str]:
    cleaned = [s.strip() for s in items if isinstance(s, str) and len(s.strip()) >= MIN_ITEM_LENGTH]
    return cleaned[:MAX_LIST_ITEMS] or list(defaults)


def parse_structured(text: str) -> Optional[AnalysisPayload]:
    """Return the reply's JSON object if it matches AnalysisPayload, else None."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split('\n')[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = '\n'.join(lines)

    start, end = cleaned.find('{'), cleaned.rfind('}')
    if start == -1 or end <= start:
        return None
    try:
        return AnalysisPayload.model_validate(json.loads(cleaned[start:end + 1]))
    except (json.JSONDecodeError, ValidationError):
        return None


def extract_analysis(text: str) -> ExtractedAnalysis:
    """Turn a raw model reply into an ExtractedAnalysis. Never raises on odd text."""
    text = text or ""
    payload = parse_structured(text)
    if payload is not None:
        improvements = _clean_items(payload.improvements, DEFAULT_IMPROVEMENTS)
        issue_count = payload.issues_detected
        return ExtractedAnalysis(
            score=clamp_score(payload.score),
            issue_count=max(0, issue_count) if issue_count is not None else len(improvements),
            strengths=_clean_items(payload.strengths, DEFAULT_STRENGTHS),
            improvements=improvements,
            raw_feedback=payload.overall_feedback or text,
        )

    improvements = extract_improvements(text)
    return ExtractedAnalysis(
        score=extract_score(text),
        issue_count=extract_issue_count(text, improvements),
        strengths=extract_strengths(text),
        improvements=improvements,
        raw_feedback=text,
    )


def failed_analysis(error: Exception) -> ExtractedAnalysis:
    """Placeholder for a submission whose model call failed."""
    return ExtractedAnalysis(
        score=0,
        issue_count=0,
        strengths=[],
        improvements=[],
        raw_feedback=f"Error analyzing submission: {error}",
    )


# =============================================================================
# AGGREGATOR
# =============================================================================

def aggregate(scores: List[int]) -> int:
    """
    Rounded mean of the positive scores; if none are positive, the mean of all.

    Zero scores are treated as failed analyses and kept out of the average
    whenever any submission succeeded.
    """
    valid = [s for s in scores if s > 0]
    pool = valid or list(scores)
    if not pool:
        return 0
    return int(math.floor(sum(pool) / len(pool) + 0.5))


def analyze_submission(request: GradingRequest, model: str = None) -> ExtractedAnalysis:
    prompt = build_grading_prompt(request)
    text = llm_service.generate_text(prompt, model=model)
    return extract_analysis(text)


def analyze_batch(submissions: list, rubric, assignment_name: str, syllabus: str = "",
                  model: str = None) -> BatchSummary:
    """
    Analyze every submission in order and summarize the batch.

    A missing credential raises ConfigurationError before any call is made.
    Any other failure is confined to its own submission.
    """
    llm_service.ensure_configured(model)

    results = []
    for submission in submissions:
        request = build_grading_request(assignment_name, rubric, syllabus, submission)
        try:
            analysis = analyze_submission(request, model=model)
        except llm_service.ConfigurationError:
            raise
        except Exception as e:
            logger.error("Error analyzing submission for %s (%s): %s",
                         request.student_name, request.student_id, e)
            analysis = failed_analysis(e)
        results.append(StudentAnalysis(
            student_name=request.student_name,
            student_id=request.student_id,
            analysis=analysis,
        ))

    overall = aggregate([r.analysis.score for r in results])
    logger.info("Analyzed %d submission(s) for %s; overall score %d",
                len(results), assignment_name or "assignment", overall)
    return BatchSummary(overall_score=overall, per_submission=results)
