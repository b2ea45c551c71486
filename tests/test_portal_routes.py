"""
Test: Portal routes - courses, assignments, rubrics, people, announcements,
submissions and login. All data comes from the fixture dataset.
"""
import io
import json


def _read(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


class TestCourses:
    def test_list_courses(self, client):
        body = client.get("/api/courses").get_json()
        courses = {c["id"]: c for c in body["courses"]}
        assert set(courses) == {"C101", "C102"}
        assert "Linear regression" in courses["C101"]["syllabusContent"]
        assert courses["C102"]["syllabusContent"].startswith("Week 1: Relational algebra")
        assert courses["C101"]["students"] == 40
        assert courses["C101"]["duration"] == "12 weeks"

    def test_filter_by_faculty(self, client):
        body = client.get("/api/courses?faculty_id=F101").get_json()
        assert [c["id"] for c in body["courses"]] == ["C101"]

    def test_get_course(self, client):
        body = client.get("/api/courses/C101").get_json()
        assert body["course"]["name"] == "Introduction to Machine Learning"

    def test_get_missing_course(self, client):
        response = client.get("/api/courses/NOPE")
        assert response.status_code == 404
        assert "error" in response.get_json()

    def test_create_course_with_text_syllabus(self, client, dataset):
        response = client.post("/api/courses", data={
            "name": "Cloud Computing",
            "code": "C201",
            "duration": "10 weeks",
            "students": "30",
            "faculty_id": "F101",
            "syllabus": (io.BytesIO(b"Week 1: Virtual machines"), "syllabus.txt"),
        }, content_type="multipart/form-data")
        body = response.get_json()
        assert body["success"] is True
        assert body["course"]["course_id"] == "C201"
        assert body["course"]["syllabusContent"] == "Week 1: Virtual machines"
        assert body["course"]["syllabus_file"] == "syllabus/C201/syllabus.txt"

        assert (dataset / "syllabus" / "C201" / "syllabus.txt").read_text() == "Week 1: Virtual machines"
        stored = _read(dataset / "courses" / "courses.json")
        assert [c["course_id"] for c in stored] == ["C101", "C102", "C201"]

    def test_create_course_rejects_broken_pdf(self, client):
        response = client.post("/api/courses", data={
            "name": "Broken",
            "code": "C202",
            "syllabus": (io.BytesIO(b"definitely not a pdf"), "syllabus.pdf"),
        }, content_type="multipart/form-data")
        assert response.status_code == 400
        assert "PDF" in response.get_json()["error"]

    def test_create_course_rejects_bad_student_count(self, client):
        response = client.post("/api/courses", data={"name": "X", "code": "C203", "students": "many"},
                               content_type="multipart/form-data")
        assert response.status_code == 400

    def test_delete_course(self, client, dataset):
        assert client.delete("/api/courses?id=C102").get_json()["success"] is True
        stored = _read(dataset / "courses" / "courses.json")
        assert [c["course_id"] for c in stored] == ["C101"]

    def test_delete_requires_id(self, client):
        assert client.delete("/api/courses").status_code == 400

    def test_syllabus_pdf_missing(self, client):
        assert client.get("/api/syllabus/pdf?course_id=C101").status_code == 404

    def test_syllabus_pdf_served(self, client, dataset):
        (dataset / "syllabus" / "C101" / "syllabus.pdf").write_bytes(b"%PDF-1.4 fake")
        response = client.get("/api/syllabus/pdf?course_id=C101")
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert "syllabus-C101.pdf" in response.headers["Content-Disposition"]


class TestAssignments:
    def test_list_by_course(self, client):
        body = client.get("/api/assignments?course_id=C101").get_json()
        assert [a["assignment_id"] for a in body["assignments"]] == ["C101_A01"]

    def test_create_single(self, client):
        response = client.post("/api/assignments", json={
            "courseId": "C101", "title": "Logistic Regression",
            "description": "Classify spam", "dueDate": "2026-10-30", "maxScore": "50",
        })
        created = response.get_json()["assignments"]
        assert created[0]["assignment_id"] == "C101_A02"
        assert created[0]["max_score"] == 50
        assert created[0]["weight"] == 25

    def test_create_requires_fields(self, client):
        assert client.post("/api/assignments", json={"courseId": "C101", "title": "X"}).status_code == 400
        assert client.post("/api/assignments", json={"title": "X"}).status_code == 400

    def test_create_from_questions(self, client):
        response = client.post("/api/assignments", json={
            "courseId": "C103", "questions": ["Explain SGD", "   ", "Derive the normal equation"],
        })
        created = response.get_json()["assignments"]
        assert [a["assignment_id"] for a in created] == ["C103_A01", "C103_A03"]
        assert created[1]["title"] == "Assignment 3"

    def test_delete_cascades(self, client, dataset):
        response = client.delete("/api/assignments?assignment_id=C101_A01")
        body = response.get_json()
        assert body["success"] is True
        assert body["deletedAssignment"]["assignment_id"] == "C101_A01"
        assert _read(dataset / "rubrics" / "rubrics.json") == []
        assert not (dataset / "submissions" / "C101" / "C101_A01").exists()

    def test_delete_missing(self, client):
        assert client.delete("/api/assignments?assignment_id=NOPE").status_code == 404
        assert client.delete("/api/assignments").status_code == 400


class TestRubrics:
    def test_requires_assignment(self, client):
        assert client.get("/api/rubrics").status_code == 400

    def test_list(self, client):
        rubrics = client.get("/api/rubrics?assignment_id=C101_A01").get_json()["rubrics"]
        assert [r["criterion_name"] for r in rubrics] == ["Model Evaluation", "Clarity"]

    def test_create_skips_invalid_criteria(self, client):
        response = client.post("/api/rubrics", json={
            "assignmentId": "C102_A01",
            "criteria": [
                {"criterion_name": "Missing description"},
                {"criterion_name": "Entities", "description": "All entities present",
                 "weight": 50, "indicators": "not a list"},
            ],
        })
        created = response.get_json()["rubrics"]
        assert len(created) == 1
        assert created[0]["rubric_id"] == "C102_A01_R02"
        assert created[0]["indicators"] == []

    def test_create_requires_criteria_list(self, client):
        assert client.post("/api/rubrics", json={"assignmentId": "X"}).status_code == 400


class TestPeople:
    def test_students_hide_password_hash(self, client):
        students = client.get("/api/students").get_json()["students"]
        assert len(students) == 2
        assert all("password_hash" not in s for s in students)

    def test_single_student(self, client):
        assert client.get("/api/students?student_id=S002").get_json()["student"]["name"] == "Bob Smith"

    def test_missing_student(self, client):
        assert client.get("/api/students?student_id=S999").status_code == 404

    def test_faculty_with_courses(self, client):
        faculty = {f["faculty_id"]: f for f in client.get("/api/admin/faculty").get_json()["faculty"]}
        assert faculty["F101"]["courseCount"] == 1
        assert "Linear regression" in faculty["F101"]["courses"][0]["syllabusContent"]
        assert faculty["F102"]["courses"][0]["syllabusContent"].startswith("Week 1")
        assert "password_hash" not in faculty["F101"]


class TestAnnouncements:
    def test_newest_first(self, client):
        items = client.get("/api/announcements").get_json()["announcements"]
        assert [a["id"] for a in items] == ["A2", "A3", "A1"]

    def test_course_filter_keeps_global(self, client):
        items = client.get("/api/announcements?course_id=C101").get_json()["announcements"]
        assert [a["id"] for a in items] == ["A2", "A1"]

    def test_legacy_defaults(self, client):
        items = {a["id"]: a for a in client.get("/api/announcements").get_json()["announcements"]}
        assert items["A1"]["senderRole"] == "faculty"
        assert items["A1"]["target"] == "students"

    def test_create_normalizes_role_and_target(self, client, dataset):
        response = client.post("/api/announcements", json={
            "title": "Office hours", "message": "Moved to Thursday",
            "courseId": "C101", "senderRole": "admin", "target": "everyone",
        })
        announcement = response.get_json()["announcement"]
        assert announcement["senderRole"] == "faculty"
        assert announcement["target"] == "students"
        assert announcement["courseId"] == "C101"
        assert announcement["senderId"] is None
        assert len(_read(dataset / "announcements" / "announcements.json")) == 4

    def test_create_requires_title_and_message(self, client):
        assert client.post("/api/announcements", json={"title": "Only title"}).status_code == 400


class TestSubmissions:
    def test_requires_ids(self, client):
        assert client.get("/api/submissions?course_id=C101").status_code == 400

    def test_empty_when_no_folder(self, client):
        assert client.get("/api/submissions?course_id=C102&assignment_id=C102_A01").get_json() == {"submissions": []}

    def test_legacy_files_listed(self, client):
        subs = client.get("/api/submissions?course_id=C101&assignment_id=C101_A01").get_json()["submissions"]
        assert len(subs) == 1
        assert subs[0]["student_id"] == "S001"
        assert subs[0]["student_name"] == "Alice Johnson"
        assert "regression" in subs[0]["content"]

    def test_upload_and_list(self, client, dataset):
        response = client.post("/api/submissions/upload", data={
            "course_id": "C101", "assignment_id": "C101_A01",
            "student_id": "S002", "student_name": "Bobby",
            "file": (io.BytesIO(b"My regression essay"), "essay.txt"),
        }, content_type="multipart/form-data")
        body = response.get_json()
        assert body["success"] is True
        filename = body["submission"]["filename"]
        assert filename.startswith("S002_") and filename.endswith(".txt")

        metadata = _read(dataset / "submissions" / "C101" / "C101_A01" / "submissions_metadata.json")
        assert metadata[0]["student_name"] == "Bobby"

        subs = client.get("/api/submissions?course_id=C101&assignment_id=C101_A01").get_json()["submissions"]
        uploaded = next(s for s in subs if s["filename"] == filename)
        assert uploaded["content"] == "My regression essay"
        assert uploaded["student_name"] == "Bob Smith"

    def test_upload_rejects_missing_fields(self, client):
        response = client.post("/api/submissions/upload", data={"course_id": "C101"},
                               content_type="multipart/form-data")
        assert response.status_code == 400

    def test_upload_rejects_unsupported_type(self, client):
        response = client.post("/api/submissions/upload", data={
            "course_id": "C101", "assignment_id": "C101_A01",
            "student_id": "S002", "student_name": "Bob",
            "file": (io.BytesIO(b"MZ"), "tool.exe"),
        }, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_serve_file(self, client):
        response = client.get("/api/submissions/pdf?course_id=C101&assignment_id=C101_A01&filename=sub01.txt")
        assert response.status_code == 200
        assert response.mimetype == "text/plain"

    def test_serve_txt_falls_back_to_pdf(self, client, dataset):
        folder = dataset / "submissions" / "C101" / "C101_A01"
        (folder / "S001_1700000000000.pdf").write_bytes(b"%PDF-1.4 fake")
        response = client.get(
            "/api/submissions/pdf?course_id=C101&assignment_id=C101_A01&filename=S001_1700000000000.txt"
        )
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"

    def test_serve_missing(self, client):
        response = client.get("/api/submissions/pdf?course_id=C101&assignment_id=C101_A01&filename=nope.pdf")
        assert response.status_code == 404

    def test_path_segments_sanitized(self, client, dataset):
        response = client.get("/api/submissions/pdf?course_id=../..&assignment_id=C101_A01&filename=courses.json")
        assert response.status_code == 404


class TestLogin:
    def test_faculty_hash_login(self, client):
        body = client.post("/api/auth/login", json={"email": "praman@university.edu", "password": "secret101"}).get_json()
        assert body["success"] is True
        assert body["user"]["id"] == "F101"
        assert "token" not in body

    def test_faculty_demo_password(self, client):
        body = client.post("/api/auth/login", json={"email": "mlee@university.edu", "password": "faculty102"}).get_json()
        assert body["success"] is True

    def test_faculty_wrong_password(self, client):
        response = client.post("/api/auth/login", json={"email": "praman@university.edu", "password": "nope"})
        assert response.status_code == 401

    def test_faculty_missing_fields(self, client):
        assert client.post("/api/auth/login", json={"email": "praman@university.edu"}).status_code == 400

    def test_student_login_normalizes_email(self, client):
        body = client.post("/api/auth/student", json={"email": "  ALICE@University.edu ", "password": " student123 "}).get_json()
        assert body["success"] is True
        assert body["user"]["enrolled_courses"] == ["C101", "C102"]
        assert body["user"]["role"] == "student"

    def test_student_wrong_password(self, client):
        response = client.post("/api/auth/student", json={"email": "alice@university.edu", "password": "bad"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid password"

    def test_student_unknown_email(self, client):
        response = client.post("/api/auth/student", json={"email": "ghost@university.edu", "password": "bad"})
        assert response.get_json()["error"] == "Invalid email or password"

    def test_admin_login(self, client):
        ok = client.post("/api/auth/admin", json={"email": "admin@university.edu", "password": "admin123"})
        assert ok.get_json()["user"]["role"] == "admin"
        bad = client.post("/api/auth/admin", json={"email": "admin@university.edu", "password": "x"})
        assert bad.status_code == 401


class TestTokenAuth:
    def test_api_open_without_secret(self, client):
        assert client.get("/api/students").status_code == 200

    def test_token_required_when_secret_set(self, client, monkeypatch):
        monkeypatch.setenv("PORTAL_JWT_SECRET", "test-secret")
        assert client.get("/api/students").status_code == 401

        login = client.post("/api/auth/admin", json={"email": "admin@university.edu", "password": "admin123"})
        token = login.get_json()["token"]

        response = client.get("/api/students", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    def test_invalid_token_rejected(self, client, monkeypatch):
        monkeypatch.setenv("PORTAL_JWT_SECRET", "test-secret")
        response = client.get("/api/courses", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid or expired token"
