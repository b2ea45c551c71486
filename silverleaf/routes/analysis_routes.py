"""
Feedback analyzer API route.
Grades a batch of submissions against a rubric and returns per-student scores.
"""
import logging

from flask import Blueprint, request, jsonify

from .. import storage
from ..services import feedback_analyzer
from ..services.llm_service import ConfigurationError

logger = logging.getLogger(__name__)

analysis_bp = Blueprint('analysis', __name__)


@analysis_bp.route('/api/analyze-assignment', methods=['POST'])
def analyze_assignment():
    """
    Analyze every submission in the request, one model call at a time.

    Body: {rubric, submissions[], assignmentName, courseId}
    """
    data = request.get_json(silent=True) or {}
    submissions = data.get('submissions')
    if not isinstance(submissions, list):
        return jsonify({"error": "submissions array is required"}), 400

    course_id = data.get('courseId')
    syllabus_context = storage.course_syllabus(course_id) if course_id else ""

    try:
        summary = feedback_analyzer.analyze_batch(
            submissions,
            rubric=data.get('rubric', ''),
            assignment_name=data.get('assignmentName', ''),
            syllabus=syllabus_context,
            model=data.get('model'),
        )
    except ConfigurationError as e:
        logger.error("Analyzer not configured: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.error("Analyzer failed: %s", e)
        return jsonify({"error": str(e) or "Unknown analyzer error"}), 500

    return jsonify(summary.to_dict())
