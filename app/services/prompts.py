"""
Prompt templates and output schemas for the three AI calls of the interview
workflow: resume extraction, question generation and interview evaluation.
"""
import json
from typing import Any, Dict, List, Optional

NOT_SPECIFIED = "Not specified"

CATEGORY_FOCUS = {
    "technical": "cover different skills, projects, and technologies",
    "behavioral": "cover teamwork, leadership, challenges, adaptability, and conflict resolution",
    "communication": "cover explanations, presentations, stakeholder management, and feedback",
}


# ============================================
# Resume extraction
# ============================================

RESUME_SCHEMA_NAME = "parse_resume"
RESUME_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "email": {"type": "string"},
        "education": {"type": "array", "items": {"type": "string"}},
        "skills": {"type": "array", "items": {"type": "string"}},
        "projects": {"type": "array", "items": {"type": "string"}},
        "experience": {"type": "array", "items": {"type": "string"}},
        "certifications": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["name", "skills"],
    "additionalProperties": False,
}

RESUME_SYSTEM_PROMPT = (
    "You are a resume parser. Extract structured information from the resume and return it "
    "with the fields: name, email, education (array), skills (array), projects (array), "
    "experience (array), certifications (array)."
)


def default_resume_data() -> Dict[str, Any]:
    return {
        "name": "Candidate",
        "email": "",
        "education": [],
        "skills": [],
        "projects": [],
        "experience": [],
        "certifications": [],
    }


def build_resume_messages(resume_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": RESUME_SYSTEM_PROMPT},
        {"role": "user", "content": f"Parse this resume and extract structured data:\n\n{resume_text}"},
    ]


# ============================================
# Question generation
# ============================================

QUESTIONS_SCHEMA_NAME = "generate_questions"


def questions_schema(count: int) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "questions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "text": {"type": "string"},
                        "type": {"type": "string"},
                    },
                    "required": ["text", "type"],
                },
                "minItems": count,
                "maxItems": count,
            }
        },
        "required": ["questions"],
        "additionalProperties": False,
    }


def _join_field(resume_data: Optional[Dict[str, Any]], field: str) -> str:
    values = (resume_data or {}).get(field) or []
    if isinstance(values, str):
        return values or NOT_SPECIFIED
    joined = ", ".join(str(v) for v in values if v)
    return joined or NOT_SPECIFIED


def build_question_messages(category: str, resume_data: Optional[Dict[str, Any]], count: int) -> List[Dict[str, str]]:
    system_prompt = f"""You are an expert interview question generator. Generate exactly {count} diverse, professional interview questions based on the candidate's resume and the chosen category ({category}).

Rules:
- Cover different aspects; do not ask two questions on the same topic
- Make questions specific to the candidate's background
- Mix difficulty levels (entry, intermediate, advanced)
- For technical: {CATEGORY_FOCUS['technical']}
- For behavioral: {CATEGORY_FOCUS['behavioral']}
- For communication: {CATEGORY_FOCUS['communication']}"""

    name = (resume_data or {}).get("name") or "Candidate"
    user_prompt = f"""Generate {count} diverse {category} interview questions for this candidate:

Name: {name}
Skills: {_join_field(resume_data, "skills")}
Projects: {_join_field(resume_data, "projects")}
Experience: {_join_field(resume_data, "experience")}
Education: {_join_field(resume_data, "education")}
Certifications: {_join_field(resume_data, "certifications")}

Return {count} questions that are diverse and cover multiple areas."""

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


# ============================================
# Interview evaluation
# ============================================

EVALUATION_SCHEMA_NAME = "evaluate_interview"
EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "clarity_score": {"type": "integer", "minimum": 0, "maximum": 100},
        "content_score": {"type": "integer", "minimum": 0, "maximum": 100},
        "confidence_score": {"type": "integer", "minimum": 0, "maximum": 100},
        "structure_score": {"type": "integer", "minimum": 0, "maximum": 100},
        "strengths": {"type": "array", "items": {"type": "string"}, "minItems": 3, "maxItems": 5},
        "improvements": {"type": "array", "items": {"type": "string"}, "minItems": 3, "maxItems": 5},
        "feedback": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string"},
                    "feedback": {"type": "string"},
                },
            },
        },
    },
    "required": [
        "clarity_score", "content_score", "confidence_score", "structure_score",
        "strengths", "improvements",
    ],
    "additionalProperties": False,
}

EVALUATION_SYSTEM_PROMPT = """You are an expert interview evaluator. Analyze the candidate's interview performance and provide detailed feedback.

Score each dimension from 0 to 100:
1. Clarity: how clear and articulate the answers are
2. Content: how relevant and complete the content is
3. Confidence: how confident and assured the answers sound
4. Structure: how well organized the answers are

Also provide:
- 3-5 key strengths (specific, actionable points)
- 3-5 areas for improvement (specific, actionable suggestions)
- Brief feedback for each question-answer pair"""


def build_evaluation_messages(
    category: str,
    resume_data: Optional[Dict[str, Any]],
    transcript: List[Dict[str, Any]],
) -> List[Dict[str, str]]:
    """
    Args:
        transcript: ordered dicts with question, answer, mode, responseTime
    """
    qa_lines = []
    for i, qa in enumerate(transcript, start=1):
        qa_lines.append(
            f"Q{i}: {qa['question']}\n"
            f"A{i} ({qa['mode']}): {qa['answer']}\n"
            f"Response Time: {qa['responseTime']}s\n"
        )

    user_prompt = f"""Evaluate this interview performance:

Category: {category}
Candidate Background:
{json.dumps(resume_data, indent=2)}

Questions & Answers:
{chr(10).join(qa_lines)}
Provide a comprehensive evaluation."""

    return [
        {"role": "system", "content": EVALUATION_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
