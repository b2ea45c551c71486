"""
Assignment and rubric API routes for the portal.
Handles listing, creating and deleting assignments and their rubric criteria.
"""
import os
import shutil
import logging
from datetime import date, timedelta

from flask import Blueprint, request, jsonify

from .. import storage

logger = logging.getLogger(__name__)

assignment_bp = Blueprint('assignment', __name__)

DEFAULT_DELIVERABLES = ['Written submission', 'Code files (if applicable)']
DEFAULT_SUBMISSION_INSTRUCTIONS = 'Submit via the course portal before the deadline.'
DEFAULT_FORMATTING = 'APA format, 12pt font, double-spaced'
DEFAULT_WEIGHT = 25


def _new_assignment(assignment_id, course_id, title, description, due_date, max_score=100):
    return {
        "assignment_id": assignment_id,
        "course_id": course_id,
        "title": title,
        "description": description,
        "deliverables": list(DEFAULT_DELIVERABLES),
        "submission_instructions": DEFAULT_SUBMISSION_INSTRUCTIONS,
        "formatting_requirements": DEFAULT_FORMATTING,
        "due_date": due_date,
        "max_score": max_score,
        "weight": DEFAULT_WEIGHT,
    }


@assignment_bp.route('/api/assignments', methods=['GET'])
def list_assignments():
    """List assignments, optionally for one ?course_id=."""
    course_id = request.args.get('course_id', '')
    try:
        assignments = storage.load_collection("assignments")
        if course_id:
            assignments = [a for a in assignments if a.get('course_id') == course_id]
        return jsonify({"assignments": assignments})
    except Exception as e:
        logger.error("Error fetching assignments: %s", e)
        return jsonify({"error": "Failed to fetch assignments"}), 500


@assignment_bp.route('/api/assignments', methods=['POST'])
def create_assignments():
    """
    Create assignments for a course.

    Two body shapes are accepted: a legacy `questions` list (one assignment
    per non-blank question, due weekly from today) or a single assignment
    with title, description and dueDate.
    """
    data = request.get_json(silent=True) or {}
    course_id = data.get('courseId')
    if not course_id:
        return jsonify({"error": "Course ID is required"}), 400

    questions = data.get('questions')
    if not isinstance(questions, list):
        title = data.get('title')
        description = data.get('description')
        due_date = data.get('dueDate')
        if not title or not description or not due_date:
            return jsonify({"error": "Title, description, and due date are required"}), 400
        try:
            max_score = int(data.get('maxScore') or 100)
        except (TypeError, ValueError):
            return jsonify({"error": "maxScore must be a number"}), 400

    def _add(assignments):
        created = []
        if isinstance(questions, list):
            for i, question in enumerate(questions):
                question = str(question).strip()
                if not question:
                    continue
                due = (date.today() + timedelta(weeks=i + 1)).isoformat()
                created.append(_new_assignment(
                    f"{course_id}_A{i + 1:02d}", course_id, f"Assignment {i + 1}", question, due
                ))
        else:
            next_num = sum(1 for a in assignments if a.get('course_id') == course_id) + 1
            created.append(_new_assignment(
                f"{course_id}_A{next_num:02d}", course_id, title, description, due_date, max_score
            ))
        return assignments + created, created

    try:
        created = storage.update_collection("assignments", _add)
        logger.info("Created %d assignment(s) for %s", len(created), course_id)
        return jsonify({"success": True, "assignments": created})
    except Exception as e:
        logger.error("Error creating assignments: %s", e)
        return jsonify({"error": "Failed to create assignments"}), 500


@assignment_bp.route('/api/assignments', methods=['DELETE'])
def delete_assignment():
    """Delete an assignment with its rubric criteria and submission files."""
    assignment_id = request.args.get('assignment_id', '')
    if not assignment_id:
        return jsonify({"error": "assignment_id is required"}), 400

    def _remove(assignments):
        for i, assignment in enumerate(assignments):
            if assignment.get('assignment_id') == assignment_id:
                return assignments[:i] + assignments[i + 1:], assignment
        return assignments, None

    try:
        deleted = storage.update_collection("assignments", _remove)
    except Exception as e:
        logger.error("Error deleting assignment %s: %s", assignment_id, e)
        return jsonify({"error": "Failed to delete assignment"}), 500

    if deleted is None:
        return jsonify({"error": "Assignment not found"}), 404

    # Related rubrics and uploads must not block the main delete
    try:
        storage.update_collection(
            "rubrics",
            lambda rubrics: ([r for r in rubrics if r.get('assignment_id') != assignment_id], None)
        )
    except Exception as e:
        logger.error("Error deleting rubrics for %s: %s", assignment_id, e)

    try:
        submissions_dir = storage.submissions_dir(deleted.get('course_id', ''), assignment_id)
        if os.path.isdir(submissions_dir):
            shutil.rmtree(submissions_dir)
    except OSError as e:
        logger.error("Error deleting submissions for %s: %s", assignment_id, e)

    return jsonify({
        "success": True,
        "message": "Assignment deleted successfully",
        "deletedAssignment": deleted,
    })


# =============================================================================
# RUBRICS
# =============================================================================

@assignment_bp.route('/api/rubrics', methods=['GET'])
def list_rubrics():
    """List rubric criteria for ?assignment_id=."""
    assignment_id = request.args.get('assignment_id', '')
    if not assignment_id:
        return jsonify({"error": "assignment_id is required"}), 400
    try:
        rubrics = [r for r in storage.load_collection("rubrics") if r.get('assignment_id') == assignment_id]
        return jsonify({"rubrics": rubrics})
    except Exception as e:
        logger.error("Error fetching rubrics: %s", e)
        return jsonify({"error": "Failed to fetch rubrics"}), 500


@assignment_bp.route('/api/rubrics', methods=['POST'])
def create_rubrics():
    """Add rubric criteria to an assignment. Criteria without a name or description are skipped."""
    data = request.get_json(silent=True) or {}
    assignment_id = data.get('assignmentId')
    criteria = data.get('criteria')
    if not assignment_id or not isinstance(criteria, list):
        return jsonify({"error": "assignmentId and criteria array are required"}), 400

    new_rubrics = []
    for index, criterion in enumerate(criteria):
        if not isinstance(criterion, dict):
            continue
        if not criterion.get('criterion_name') or not criterion.get('description'):
            continue
        indicators = criterion.get('indicators')
        new_rubrics.append({
            "rubric_id": f"{assignment_id}_R{index + 1:02d}",
            "assignment_id": assignment_id,
            "criterion_name": criterion['criterion_name'],
            "weight": criterion.get('weight') or 0,
            "description": criterion['description'],
            "indicators": indicators if isinstance(indicators, list) else [],
        })

    try:
        storage.update_collection("rubrics", lambda rubrics: (rubrics + new_rubrics, None))
        return jsonify({"success": True, "rubrics": new_rubrics})
    except Exception as e:
        logger.error("Error creating rubrics: %s", e)
        return jsonify({"error": "Failed to create rubrics"}), 500
