"""
Submission API routes for the portal.
Handles student uploads, listing submissions for an assignment, and serving files.
"""
import os
import re
import time
import logging
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, send_file

from .. import storage
from ..config import SUPPORTED_UPLOAD_TYPES
from ..documents import extract_text, DocumentError

logger = logging.getLogger(__name__)

submission_bp = Blueprint('submission', __name__)

LEGACY_SUBMISSION = re.compile(r'^sub(\d+)\.txt$')

CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.txt': 'text/plain',
    '.doc': 'application/msword',
    '.docx': 'application/msword',
}


def _read_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def read_submission_content(directory: str, meta: dict) -> str:
    """Text of a stored submission; binary uploads are read through their .txt sidecar."""
    filename = meta.get('filename', '')
    filepath = os.path.join(directory, filename)
    stem, ext = os.path.splitext(filename)

    if ext.lower() in ('.pdf', '.docx', '.doc'):
        sidecar = os.path.join(directory, f"{stem}.txt")
        if os.path.exists(sidecar):
            return _read_text(sidecar)
        return f"[{ext.lstrip('.').upper()} submission by {meta.get('student_name')} ({meta.get('student_id')})]"
    return _read_text(filepath)


@submission_bp.route('/api/submissions', methods=['GET'])
def list_submissions():
    """List submissions for ?course_id=&assignment_id=, including legacy subNN.txt files."""
    course_id = request.args.get('course_id', '')
    assignment_id = request.args.get('assignment_id', '')
    if not course_id or not assignment_id:
        return jsonify({"error": "course_id and assignment_id are required"}), 400

    directory = storage.submissions_dir(course_id, assignment_id)
    if not os.path.isdir(directory):
        return jsonify({"submissions": []})

    try:
        submissions = []
        for meta in storage.load_submission_metadata(course_id, assignment_id):
            filepath = os.path.join(directory, meta.get('filename', ''))
            if not meta.get('filename') or not os.path.exists(filepath):
                continue
            try:
                content = read_submission_content(directory, meta)
            except OSError as e:
                logger.error("Error reading submission %s: %s", meta.get('filename'), e)
                continue
            student_id = meta.get('student_id')
            submissions.append({
                "filename": meta['filename'],
                "content": content,
                "path": filepath,
                "student_id": student_id,
                "student_name": storage.get_student_name(student_id) if student_id else meta.get('student_name'),
                "submitted_at": meta.get('submitted_at'),
            })

        known = {s['filename'] for s in submissions}
        for filename in sorted(os.listdir(directory)):
            match = LEGACY_SUBMISSION.match(filename)
            if not match or filename in known:
                continue
            filepath = os.path.join(directory, filename)
            try:
                content = _read_text(filepath)
            except OSError as e:
                logger.error("Error reading submission %s: %s", filename, e)
                continue
            student_id = f"S{match.group(1).zfill(3)}"
            submissions.append({
                "filename": filename,
                "content": content,
                "path": filepath,
                "student_id": student_id,
                "student_name": storage.get_student_name(student_id),
            })

        return jsonify({"submissions": submissions})
    except Exception as e:
        logger.error("Error fetching submissions: %s", e)
        return jsonify({"error": "Failed to fetch submissions"}), 500


@submission_bp.route('/api/submissions/upload', methods=['POST'])
def upload_submission():
    """
    Store a student's uploaded file and append its metadata.

    PDF and DOCX uploads also get a .txt sidecar with the extracted text so the
    analyzer and listing can read them.
    """
    form = request.form
    course_id = form.get('course_id', '')
    assignment_id = form.get('assignment_id', '')
    student_id = form.get('student_id', '')
    student_name = form.get('student_name', '')
    upload = request.files.get('file')

    if not course_id or not assignment_id or not student_id or not student_name or not upload:
        return jsonify({"error": "Missing required fields"}), 400

    ext = os.path.splitext(upload.filename or '')[1].lower() or '.txt'
    if ext not in SUPPORTED_UPLOAD_TYPES:
        return jsonify({"error": f"Unsupported file type: {ext}"}), 400

    try:
        directory = storage.submissions_dir(course_id, assignment_id)
        os.makedirs(directory, exist_ok=True)

        stem = f"{storage.safe_segment(student_id)}_{int(time.time() * 1000)}"
        filename = f"{stem}{ext}"
        data = upload.read()
        with open(os.path.join(directory, filename), 'wb') as f:
            f.write(data)

        if ext in ('.pdf', '.docx'):
            try:
                text = extract_text(filename, data)
            except DocumentError as e:
                logger.warning("Could not extract text from %s: %s", filename, e)
                text = f"Submission by {student_name} ({student_id})\n\n[Text could not be extracted]"
            with open(os.path.join(directory, f"{stem}.txt"), 'w', encoding='utf-8') as f:
                f.write(text)

        entry = {
            "filename": filename,
            "student_id": student_id,
            "student_name": student_name,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
            "course_id": course_id,
            "assignment_id": assignment_id,
        }
        storage.append_submission_metadata(course_id, assignment_id, entry)
        logger.info("Submission %s stored for %s/%s", filename, course_id, assignment_id)

        return jsonify({
            "success": True,
            "message": "Submission uploaded successfully",
            "submission": entry,
        })
    except Exception as e:
        logger.error("Error uploading submission: %s", e)
        return jsonify({"error": "Failed to upload submission"}), 500


@submission_bp.route('/api/submissions/pdf', methods=['GET'])
def serve_submission():
    """Serve a stored submission file inline; a missing .txt falls back to its .pdf."""
    course_id = request.args.get('course_id', '')
    assignment_id = request.args.get('assignment_id', '')
    filename = os.path.basename(request.args.get('filename', ''))
    if not course_id or not assignment_id or not filename:
        return jsonify({"error": "course_id, assignment_id, and filename are required"}), 400

    directory = storage.submissions_dir(course_id, assignment_id)
    filepath = os.path.join(directory, filename)

    if not os.path.isfile(filepath):
        stem, ext = os.path.splitext(filename)
        alt = os.path.join(directory, f"{stem}.pdf")
        if ext == '.txt' and os.path.isfile(alt):
            filepath, filename = alt, f"{stem}.pdf"
        else:
            return jsonify({"error": "File not found"}), 404

    content_type = CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), 'application/pdf')
    return send_file(filepath, mimetype=content_type, download_name=filename)
