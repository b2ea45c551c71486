"""
Login API routes for faculty, students and the portal admin.
"""
import logging

from flask import Blueprint, request, jsonify

from .. import storage
from ..auth import hash_password, issue_token
from ..config import ADMIN_EMAIL, ADMIN_PASSWORD

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _credentials():
    data = request.get_json(silent=True) or {}
    return data.get('email'), data.get('password')


def _login_response(user: dict, role: str):
    body = {"success": True, "user": user}
    token = issue_token(user["id"], role, user.get("email", ""))
    if token:
        body["token"] = token
    return jsonify(body)


@auth_bp.route('/api/auth/login', methods=['POST'])
def faculty_login():
    """
    Faculty login.

    Accepts the stored sha256 password hash, or the demo password
    `faculty<NNN>` derived from the faculty id.
    """
    email, password = _credentials()
    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    try:
        faculty = next((f for f in storage.load_collection("faculty") if f.get("email") == email), None)
        if not faculty:
            return jsonify({"success": False, "error": "Invalid credentials"}), 401

        if hash_password(password) != faculty.get("password_hash"):
            expected = f"faculty{faculty.get('faculty_id', '').replace('F', '')}"
            if password != expected:
                return jsonify({"success": False, "error": "Invalid credentials"}), 401

        logger.info("Faculty login: %s", faculty.get("faculty_id"))
        return _login_response({
            "id": faculty.get("faculty_id"),
            "email": faculty.get("email"),
            "name": faculty.get("name"),
            "department": faculty.get("department"),
            "designation": faculty.get("designation"),
            "role": "faculty",
        }, "faculty")
    except Exception as e:
        logger.error("Login error: %s", e)
        return jsonify({"error": "Authentication failed"}), 500


@auth_bp.route('/api/auth/student', methods=['POST'])
def student_login():
    """Student login; email is matched case-insensitively after trimming."""
    email, password = _credentials()
    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    try:
        email = email.strip().lower()
        password_hash = hash_password(password.strip())
        students = storage.load_collection("students")

        student = next(
            (s for s in students
             if (s.get("email") or "").lower() == email and s.get("password_hash") == password_hash),
            None
        )
        if student is None:
            email_exists = any((s.get("email") or "").lower() == email for s in students)
            error = "Invalid password" if email_exists else "Invalid email or password"
            return jsonify({"success": False, "error": error}), 401

        logger.info("Student login: %s", student.get("student_id"))
        return _login_response({
            "id": student.get("student_id"),
            "email": student.get("email"),
            "name": student.get("name"),
            "enrolled_courses": student.get("enrolled_courses", []),
            "role": "student",
        }, "student")
    except Exception as e:
        logger.error("Student login error: %s", e)
        return jsonify({"error": "Authentication failed"}), 500


@auth_bp.route('/api/auth/admin', methods=['POST'])
def admin_login():
    """Admin login against the configured credentials."""
    email, password = _credentials()
    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    if email == ADMIN_EMAIL and password == ADMIN_PASSWORD:
        return _login_response({
            "id": "admin",
            "email": ADMIN_EMAIL,
            "name": "Administrator",
            "role": "admin",
        }, "admin")

    return jsonify({"success": False, "error": "Invalid admin credentials"}), 401
