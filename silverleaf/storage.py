"""
Flat JSON dataset access for the portal.

Each collection is a single JSON array on disk under DATASET_DIR. Reads return
a snapshot; writes go through update_collection(), which holds a process-wide
lock across the read-modify-write and swaps the file in atomically.
"""
import os
import json
import logging
import tempfile
import threading

from .config import DATASET_DIR

logger = logging.getLogger(__name__)

# Collection name -> path relative to DATASET_DIR
COLLECTIONS = {
    "courses": os.path.join("courses", "courses.json"),
    "assignments": os.path.join("assignments", "assignments.json"),
    "rubrics": os.path.join("rubrics", "rubrics.json"),
    "students": os.path.join("students", "students.json"),
    "faculty": os.path.join("faculty", "faculty.json"),
    "announcements": os.path.join("announcements", "announcements.json"),
}

SUBMISSIONS_METADATA = "submissions_metadata.json"

_write_lock = threading.RLock()


def dataset_path(*parts) -> str:
    """Join path parts under the dataset root."""
    return os.path.join(DATASET_DIR, *parts)


def safe_segment(value) -> str:
    """Reduce an id to characters that are safe as a single path segment."""
    return "".join(c for c in str(value or "") if c.isalnum() or c in "-_").strip()


def collection_path(name: str) -> str:
    if name not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {name}")
    return dataset_path(COLLECTIONS[name])


def read_json_list(filepath: str) -> list:
    """Load a JSON array from disk. Missing or corrupt files read as empty."""
    if not os.path.exists(filepath):
        return []
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.error("Error loading %s: %s", filepath, e)
        return []
    if not isinstance(data, list):
        logger.warning("Expected a JSON array in %s, got %s", filepath, type(data).__name__)
        return []
    return data


def write_json_atomic(filepath: str, data) -> None:
    """Write JSON to a temp file beside the target, then replace the target."""
    directory = os.path.dirname(filepath)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, filepath)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def load_collection(name: str) -> list:
    return read_json_list(collection_path(name))


def update_collection(name: str, mutate):
    """
    Read-modify-write a collection under the write lock.

    `mutate` receives the current list and returns (new_list, result); the
    new list is persisted and `result` handed back to the caller.
    """
    filepath = collection_path(name)
    with _write_lock:
        items = read_json_list(filepath)
        new_items, result = mutate(items)
        write_json_atomic(filepath, new_items)
    return result


def update_json_file(filepath: str, mutate):
    """Same as update_collection() for an arbitrary JSON array file."""
    with _write_lock:
        items = read_json_list(filepath)
        new_items, result = mutate(items)
        write_json_atomic(filepath, new_items)
    return result


# =============================================================================
# SYLLABUS TEXT
# =============================================================================

def syllabus_dir(course_id: str) -> str:
    return dataset_path("syllabus", safe_segment(course_id))


def load_syllabus_content(course_id: str) -> str:
    """Return the stored syllabus text for a course, or '' if none."""
    if not course_id:
        return ""
    txt_path = os.path.join(syllabus_dir(course_id), "syllabus.txt")
    if not os.path.exists(txt_path):
        return ""
    try:
        with open(txt_path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        logger.error("Error loading syllabus for %s: %s", course_id, e)
        return ""


def save_syllabus_content(course_id: str, content: str) -> str:
    """Persist syllabus text and return its dataset-relative path."""
    directory = syllabus_dir(course_id)
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, "syllabus.txt"), 'w', encoding='utf-8') as f:
        f.write(content)
    return f"syllabus/{safe_segment(course_id)}/syllabus.txt"


# =============================================================================
# SUBMISSIONS
# =============================================================================

def submissions_dir(course_id: str, assignment_id: str) -> str:
    return dataset_path("submissions", safe_segment(course_id), safe_segment(assignment_id))


def load_submission_metadata(course_id: str, assignment_id: str) -> list:
    return read_json_list(os.path.join(submissions_dir(course_id, assignment_id), SUBMISSIONS_METADATA))


def append_submission_metadata(course_id: str, assignment_id: str, entry: dict) -> dict:
    filepath = os.path.join(submissions_dir(course_id, assignment_id), SUBMISSIONS_METADATA)

    def _append(items):
        items.append(entry)
        return items, entry

    return update_json_file(filepath, _append)


def find_course(course_id: str):
    """Look a course up by course_id (or legacy id)."""
    for course in load_collection("courses"):
        if course.get("course_id") == course_id or course.get("id") == course_id:
            return course
    return None


def course_syllabus(course_id: str) -> str:
    """Syllabus text for a course: the stored .txt, else the course record's copy."""
    content = load_syllabus_content(course_id)
    if content:
        return content
    course = find_course(course_id)
    return (course or {}).get("syllabusContent", "") or ""


def get_student_name(student_id: str) -> str:
    for student in load_collection("students"):
        if student.get("student_id") == student_id:
            return student.get("name") or student_id
    return f"Student {student_id.replace('S', '')}"
