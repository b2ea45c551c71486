"""
Course API routes for the portal.
Handles listing, creating and deleting courses and serving syllabus files.
"""
import os
import time
import logging
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, send_file

from .. import storage
from ..documents import extract_text, DocumentError

logger = logging.getLogger(__name__)

course_bp = Blueprint('course', __name__)


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def course_to_dict(course: dict, faculty_id: str = '') -> dict:
    """Shape a stored course record the way the dashboards read it."""
    course_id = course.get('course_id') or course.get('id') or course.get('code')
    syllabus_content = course.get('syllabusContent') or storage.load_syllabus_content(course_id)
    return {
        "id": course_id,
        "code": course.get('code') or course_id,
        "name": course.get('name'),
        "description": course.get('description', ''),
        "duration": course.get('duration') or '12 weeks',
        "students": course.get('students') or course.get('strength') or 0,
        "syllabusContent": syllabus_content,
        "syllabusUrl": course.get('syllabus_file') or course.get('syllabusUrl'),
        "timetableUrl": course.get('timeline_file') or course.get('timetableUrl'),
        "faculty_id": course.get('faculty_id') or faculty_id,
        "createdAt": course.get('createdAt') or _now_iso(),
    }


@course_bp.route('/api/courses', methods=['GET'])
def list_courses():
    """List courses, optionally only those taught by ?faculty_id=."""
    faculty_id = request.args.get('faculty_id', '')
    try:
        courses = storage.load_collection("courses")
        if faculty_id:
            courses = [c for c in courses if (c.get('faculty_id') or '') == faculty_id]
        return jsonify({"courses": [course_to_dict(c, faculty_id) for c in courses]})
    except Exception as e:
        logger.error("Error fetching courses: %s", e)
        return jsonify({"error": "Failed to fetch courses"}), 500


@course_bp.route('/api/courses', methods=['POST'])
def create_course():
    """
    Create a course from a multipart form.

    The optional `syllabus` file (PDF, DOCX or text) is reduced to plain text,
    stored on the course record and written to syllabus/<code>/syllabus.txt.
    """
    form = request.form
    name = form.get('name', '')
    code = form.get('code', '')
    duration = form.get('duration', '')
    faculty_id = form.get('faculty_id') or 'F101'
    try:
        students = int(form.get('students') or 0)
    except ValueError:
        return jsonify({"error": "students must be a number"}), 400

    course_id = code or f"C{int(time.time() * 1000)}"

    syllabus_content = ''
    syllabus_file = request.files.get('syllabus')
    if syllabus_file and syllabus_file.filename:
        try:
            syllabus_content = extract_text(syllabus_file.filename, syllabus_file.read())
        except DocumentError as e:
            return jsonify({"error": str(e)}), 400

    try:
        syllabus_path = ''
        if syllabus_content:
            syllabus_path = storage.save_syllabus_content(course_id, syllabus_content)

        new_course = {
            "course_id": course_id,
            "faculty_id": faculty_id,
            "name": name,
            "code": code,
            "description": f"{name} - {code}",
            "duration": duration,
            "strength": students,
            "syllabusContent": syllabus_content,
            "syllabus_file": syllabus_path,
            "timeline_file": '',
            "createdAt": _now_iso(),
        }

        def _add(courses):
            return courses + [new_course], new_course

        storage.update_collection("courses", _add)
        logger.info("Course created: %s (faculty %s)", course_id, faculty_id)
        return jsonify({"success": True, "course": new_course})
    except Exception as e:
        logger.error("Course creation error: %s", e)
        return jsonify({"error": str(e) or "Failed to create course"}), 500


@course_bp.route('/api/courses', methods=['DELETE'])
def delete_course():
    """Remove a course by ?id=."""
    course_id = request.args.get('id', '')
    if not course_id:
        return jsonify({"error": "Course ID is required"}), 400

    try:
        def _remove(courses):
            kept = [c for c in courses if c.get('course_id') != course_id and c.get('id') != course_id]
            return kept, len(courses) - len(kept)

        removed = storage.update_collection("courses", _remove)
        logger.info("Course %s deleted (%d record(s))", course_id, removed)
        return jsonify({"success": True})
    except Exception as e:
        logger.error("Delete course error: %s", e)
        return jsonify({"error": "Failed to delete course"}), 500


@course_bp.route('/api/courses/<course_id>', methods=['GET'])
def get_course(course_id):
    """Fetch one course with its syllabus text."""
    try:
        course = storage.find_course(course_id)
        if not course:
            return jsonify({"error": "Course not found"}), 404
        return jsonify({"course": course_to_dict(course)})
    except Exception as e:
        logger.error("Error fetching course %s: %s", course_id, e)
        return jsonify({"error": "Failed to fetch course"}), 500


@course_bp.route('/api/syllabus/pdf', methods=['GET'])
def syllabus_pdf():
    """Download the original syllabus PDF for ?course_id=."""
    course_id = request.args.get('course_id', '')
    if not course_id:
        return jsonify({"error": "Course ID is required"}), 400

    pdf_path = os.path.join(storage.syllabus_dir(course_id), "syllabus.pdf")
    if not os.path.isfile(pdf_path):
        return jsonify({"error": "Syllabus PDF not found"}), 404

    return send_file(
        pdf_path,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"syllabus-{course_id}.pdf",
    )
