"""
Student and faculty directory routes.
"""
import logging

from flask import Blueprint, request, jsonify

from .. import storage

logger = logging.getLogger(__name__)

people_bp = Blueprint('people', __name__)


def _public(record: dict) -> dict:
    """Drop credential fields before a record leaves the server."""
    return {k: v for k, v in record.items() if k != 'password_hash'}


@people_bp.route('/api/students', methods=['GET'])
def get_students():
    """All students, or one by ?student_id=."""
    student_id = request.args.get('student_id', '')
    try:
        students = storage.load_collection("students")
        if student_id:
            student = next((s for s in students if s.get('student_id') == student_id), None)
            if not student:
                return jsonify({"error": "Student not found"}), 404
            return jsonify({"student": _public(student)})
        return jsonify({"students": [_public(s) for s in students]})
    except Exception as e:
        logger.error("Error fetching students: %s", e)
        return jsonify({"error": "Failed to fetch students"}), 500


@people_bp.route('/api/admin/faculty', methods=['GET'])
def get_faculty():
    """Every faculty member with the courses they teach."""
    try:
        courses = storage.load_collection("courses")
        faculty = []
        for member in storage.load_collection("faculty"):
            member_courses = []
            for course in courses:
                if course.get('faculty_id') != member.get('faculty_id'):
                    continue
                syllabus = storage.load_syllabus_content(course.get('course_id', ''))
                member_courses.append({
                    **course,
                    "syllabusContent": syllabus or course.get('syllabusContent', ''),
                })
            faculty.append({
                **_public(member),
                "courses": member_courses,
                "courseCount": len(member_courses),
            })
        return jsonify({"faculty": faculty})
    except Exception as e:
        logger.error("Error fetching faculty data: %s", e)
        return jsonify({"error": "Failed to fetch faculty data"}), 500
