"""
Announcement routes: course-scoped or global notices from faculty and students.
"""
import time
import logging
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify

from .. import storage

logger = logging.getLogger(__name__)

announcement_bp = Blueprint('announcement', __name__)

SENDER_ROLES = ("faculty", "student")
TARGETS = ("students", "faculty", "all")


def _optional_str(value):
    return str(value) if value else None


@announcement_bp.route('/api/announcements', methods=['GET'])
def list_announcements():
    """
    Newest-first announcements. With ?course_id=, only that course's
    announcements plus global ones (no course) are returned.
    """
    course_id = request.args.get('course_id', '')
    try:
        announcements = []
        for item in storage.load_collection("announcements"):
            # Older records may lack sender info
            announcements.append({
                **item,
                "senderRole": item.get("senderRole") or "faculty",
                "target": item.get("target") or "students",
            })

        if course_id:
            announcements = [a for a in announcements if not a.get("courseId") or a.get("courseId") == course_id]

        announcements.sort(key=lambda a: a.get("createdAt") or "", reverse=True)
        return jsonify({"announcements": announcements})
    except Exception as e:
        logger.error("Error fetching announcements: %s", e)
        return jsonify({"error": "Failed to fetch announcements"}), 500


@announcement_bp.route('/api/announcements', methods=['POST'])
def create_announcement():
    """Post an announcement; unknown roles default to faculty, unknown targets to students."""
    data = request.get_json(silent=True) or {}
    title = data.get("title")
    message = data.get("message")
    if not title or not message:
        return jsonify({"error": "title and message are required"}), 400

    sender_role = data.get("senderRole")
    target = data.get("target")

    announcement = {
        "id": f"A{int(time.time() * 1000)}",
        "title": str(title),
        "message": str(message),
        "courseId": _optional_str(data.get("courseId")),
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "senderRole": sender_role if sender_role in SENDER_ROLES else "faculty",
        "senderId": _optional_str(data.get("senderId")),
        "senderName": _optional_str(data.get("senderName")),
        "target": target if target in TARGETS else "students",
        "toEmail": _optional_str(data.get("toEmail")),
    }

    try:
        storage.update_collection("announcements", lambda items: (items + [announcement], None))
        return jsonify({"success": True, "announcement": announcement})
    except Exception as e:
        logger.error("Error creating announcement: %s", e)
        return jsonify({"error": "Failed to create announcement"}), 500
