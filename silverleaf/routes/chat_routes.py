"""
Faculty chat assistant routes.
Streams model replies as plain text, with a non-streaming fallback.
"""
import logging

from flask import Blueprint, request, jsonify, Response, stream_with_context

from .. import storage
from ..services import llm_service
from ..services.llm_service import ConfigurationError

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__)

# Only the most recent turns are sent to the model
HISTORY_LIMIT = 10

OFF_TOPIC_REPLY = "This question is not related to this course."


def build_system_prompt(syllabus_context: str = "") -> str:
    """System instruction for the faculty assistant, with optional syllabus context."""
    return f"""
You are **Silver Leaf University's Faculty Assistant**.

Your purpose:
- Help professors understand course topics deeply.
- Provide detailed academic explanations, breakdowns, examples, and theory.
- Expand beyond the syllabus when intellectually relevant.
- Support faculty preparing lectures, assignments, exams, and teaching material.

Allowed academic expansions:
- Machine Learning and Deep Learning
- Python, Data Science, Statistics
- Algorithms, DBMS, Cloud Computing
- Neural networks, optimization, math
- Any concept normally covered in a graduate-level CS/IS/AI curriculum

Always give a high-level overview, then deep detail with explanations and examples.

===========================
STRICTLY NOT ALLOWED
===========================
If asked about:
- SSN or personal identity
- Immigration / OPT / visa
- Jobs, salary, resumes
- Legal, medical, political topics
- Dating or personal advice
- Irrelevant real-world topics

Reply EXACTLY with:
"{OFF_TOPIC_REPLY}"

===========================
SYLLABUS CONTEXT (optional)
===========================
{syllabus_context}

Use this to understand the course domain; you are expected to go deeper
academically when needed.
"""


def _normalize_messages(messages: list) -> list:
    recent = messages[-HISTORY_LIMIT:]
    return [
        {
            "role": "assistant" if m.get("role") == "assistant" else "user",
            "content": str(m.get("content", "")),
        }
        for m in recent if isinstance(m, dict)
    ]


@chat_bp.route('/api/chat', methods=['POST'])
def chat():
    """Answer a faculty question, streaming the reply when the provider allows it."""
    data = request.get_json(silent=True) or {}
    messages = data.get('messages')
    if not messages or not isinstance(messages, list):
        return jsonify({"error": "messages array is required"}), 400

    try:
        llm_service.ensure_configured()
    except ConfigurationError as e:
        return jsonify({"error": str(e)}), 500

    course_id = data.get('courseId')
    syllabus_context = storage.course_syllabus(course_id) if course_id else ""
    system_prompt = build_system_prompt(syllabus_context)
    history = _normalize_messages(messages)

    try:
        chunks = llm_service.stream_chat(history, system_prompt=system_prompt)
        first_chunk = next(chunks, None)
    except ConfigurationError as e:
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.warning("Streaming failed, falling back: %s", e)
        try:
            reply = llm_service.generate_chat(history, system_prompt=system_prompt)
        except Exception as fallback_error:
            logger.error("Chat fallback failed: %s", fallback_error)
            return jsonify({"error": str(fallback_error) or "Chat API error"}), 500
        return jsonify({"success": True, "reply": reply})

    def generate():
        if first_chunk:
            yield first_chunk
        try:
            for chunk in chunks:
                yield chunk
        except Exception as e:
            # Headers are already sent; end the stream
            logger.error("Chat stream interrupted: %s", e)

    return Response(
        stream_with_context(generate()),
        mimetype='text/plain',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
        }
    )


@chat_bp.route('/api/test-gemini')
def test_gemini():
    """Connectivity probe: ask the model to say OK."""
    try:
        llm_service.ensure_configured()
    except ConfigurationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        text = llm_service.check_connection()
    except Exception as e:
        logger.warning("Model connectivity check failed: %s", e)
        return jsonify({"success": False, "message": str(e)})

    return jsonify({"success": True, "text": text})
