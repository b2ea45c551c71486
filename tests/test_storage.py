"""
Test: Dataset storage and uploaded-document text extraction.
"""
import io
import json
import threading

import pytest

from silverleaf import storage
from silverleaf.documents import extract_text, DocumentError


class TestStorage:
    def test_missing_collection_reads_empty(self, dataset):
        (dataset / "rubrics" / "rubrics.json").unlink()
        assert storage.load_collection("rubrics") == []

    def test_corrupt_collection_reads_empty(self, dataset):
        (dataset / "rubrics" / "rubrics.json").write_text("{not json")
        assert storage.load_collection("rubrics") == []

    def test_non_list_reads_empty(self, dataset):
        (dataset / "rubrics" / "rubrics.json").write_text('{"a": 1}')
        assert storage.load_collection("rubrics") == []

    def test_unknown_collection(self, dataset):
        with pytest.raises(KeyError):
            storage.load_collection("grades")

    def test_update_returns_result_and_persists(self, dataset):
        result = storage.update_collection("rubrics", lambda items: (items[:1], len(items)))
        assert result == 2
        assert len(json.loads((dataset / "rubrics" / "rubrics.json").read_text())) == 1

    def test_failed_mutation_leaves_file_untouched(self, dataset):
        before = (dataset / "rubrics" / "rubrics.json").read_text()

        def explode(items):
            raise ValueError("bad edit")

        with pytest.raises(ValueError):
            storage.update_collection("rubrics", explode)
        assert (dataset / "rubrics" / "rubrics.json").read_text() == before
        assert not list((dataset / "rubrics").glob(".tmp-*"))

    def test_concurrent_appends_are_not_lost(self, dataset):
        def add(n):
            storage.update_collection(
                "announcements", lambda items: (items + [{"id": f"T{n}", "createdAt": ""}], None)
            )

        threads = [threading.Thread(target=add, args=(n,)) for n in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(storage.load_collection("announcements")) == 23

    def test_safe_segment(self):
        assert storage.safe_segment("../C101") == "C101"
        assert storage.safe_segment("C101_A01") == "C101_A01"
        assert storage.safe_segment(None) == ""

    def test_course_syllabus_prefers_file(self, dataset):
        assert "Linear regression" in storage.course_syllabus("C101")
        assert storage.course_syllabus("C102").startswith("Week 1: Relational algebra")
        assert storage.course_syllabus("C999") == ""

    def test_student_name_fallback(self, dataset):
        assert storage.get_student_name("S001") == "Alice Johnson"
        assert storage.get_student_name("S042") == "Student 042"

    def test_submission_metadata(self, dataset):
        entry = {"filename": "S001_1.txt", "student_id": "S001"}
        storage.append_submission_metadata("C101", "C101_A01", entry)
        assert storage.load_submission_metadata("C101", "C101_A01") == [entry]


class TestDocuments:
    def test_plain_text(self):
        assert extract_text("notes.txt", "Café week 1".encode("utf-8")) == "Café week 1"

    def test_undecodable_bytes_replaced(self):
        assert extract_text("old.doc", b"ok \xff\xfe").startswith("ok ")

    def test_docx(self):
        from docx import Document

        doc = Document()
        doc.add_paragraph("Week 1: Linear regression")
        doc.add_paragraph("Week 2: Regularization")
        buffer = io.BytesIO()
        doc.save(buffer)

        text = extract_text("syllabus.docx", buffer.getvalue())
        assert text == "Week 1: Linear regression\nWeek 2: Regularization"

    def test_broken_docx(self):
        with pytest.raises(DocumentError):
            extract_text("syllabus.docx", b"not a zip file")

    def test_broken_pdf(self):
        with pytest.raises(DocumentError):
            extract_text("syllabus.PDF", b"definitely not a pdf")
