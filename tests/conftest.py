"""
Shared test fixtures for the Silver Leaf portal.
Builds a throwaway dataset from tests/fixtures and monkeypatches the dataset
root and the model call. Zero network calls.
"""
import os
import shutil
import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")

COLLECTION_FILES = {
    "courses.json": "courses",
    "assignments.json": "assignments",
    "rubrics.json": "rubrics",
    "students.json": "students",
    "faculty.json": "faculty",
    "announcements.json": "announcements",
}


@pytest.fixture(autouse=True)
def llm_env(monkeypatch):
    """Fast, offline model settings: a fake key, no retry sleeps, auth disabled."""
    from silverleaf.config import config

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("PORTAL_JWT_SECRET", raising=False)
    monkeypatch.setattr(config, "default_model", "gemini-flash")
    monkeypatch.setattr(config, "llm_retry_delay", 0)
    monkeypatch.setattr(config, "llm_max_retries", 3)


@pytest.fixture
def fixtures_dir():
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def dataset(tmp_path, monkeypatch):
    """Lay fixture files out as a dataset directory and point storage at it."""
    import silverleaf.storage as storage

    root = tmp_path / "dataset"
    for filename, collection in COLLECTION_FILES.items():
        target = root / collection
        target.mkdir(parents=True, exist_ok=True)
        shutil.copy2(os.path.join(FIXTURES_DIR, filename), target / filename)

    syllabus = root / "syllabus" / "C101"
    syllabus.mkdir(parents=True)
    shutil.copy2(os.path.join(FIXTURES_DIR, "syllabus_C101.txt"), syllabus / "syllabus.txt")

    submissions = root / "submissions" / "C101" / "C101_A01"
    submissions.mkdir(parents=True)
    shutil.copy2(os.path.join(FIXTURES_DIR, "sub01.txt"), submissions / "sub01.txt")

    monkeypatch.setattr(storage, "DATASET_DIR", str(root))
    return root


@pytest.fixture
def app(dataset):
    from silverleaf.app import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def reply_text():
    """A well-formed model reply in the requested text format."""
    with open(os.path.join(FIXTURES_DIR, "reply_text_format.txt"), encoding="utf-8") as f:
        return f.read()


@pytest.fixture
def fake_model(monkeypatch):
    """
    Replace llm_service.generate_text with a scripted fake.

    Call fake_model(outcomes) with a list of reply strings or exceptions; they
    are consumed in order, one per model call. The prompts sent are recorded
    on the returned list.
    """
    from silverleaf.services import llm_service

    def install(outcomes):
        queue = list(outcomes)
        prompts = []

        def fake_generate_text(prompt, model=None, system_prompt=None):
            prompts.append(prompt)
            outcome = queue.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        monkeypatch.setattr(llm_service, "generate_text", fake_generate_text)
        return prompts

    return install
