import json
import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure tests use an in-memory SQLite DB and JSON columns stay generic
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FORCE_GENERIC_JSON", "1")

# Ensure the project root is on sys.path so `import healthcare_pro` works when
# running pytest from the repository root.
ROOT_DIR = Path(__file__).resolve().parents[2]  # repository root
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from healthcare_pro.app import app
from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import Base, get_db
from healthcare_pro.middleware.rate_limit import reset_limiter
from healthcare_pro.services.llm_client import get_llm_client
from healthcare_pro.services.preferences import PreferencesStore, get_preferences_store
from healthcare_pro.services.store import DataStore
from healthcare_pro.services.workflows.registry import WorkflowRegistry, get_registry

USER_ID = "user-1"

# In-memory SQLite shared across connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def create_schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db
app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=USER_ID, email="u@example.com", name="Test User")

# Code paths that open their own session use the test engine as well
import healthcare_pro.db.session as session_mod
session_mod.engine = engine
session_mod.SessionLocal = TestingSessionLocal
import healthcare_pro.models as models_mod
models_mod.engine = engine


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    # ensure limiter state fresh each test
    reset_limiter()
    yield


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return DataStore(db, USER_ID)


class FakeLLM:
    """Stands in for LLMClient: returns queued responses and records every call."""

    configured = True

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    async def complete(self, prompt, temperature=None, max_tokens=None, system=None, top_p=None):
        self.calls.append({
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "system": system,
            "top_p": top_p,
        })
        if not self.responses:
            raise AssertionError("unexpected LLM call")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_llm():
    llm = FakeLLM()
    app.dependency_overrides[get_llm_client] = lambda: llm
    yield llm
    app.dependency_overrides.pop(get_llm_client, None)


@pytest.fixture
def registry():
    reg = WorkflowRegistry(per_user=5)
    app.dependency_overrides[get_registry] = lambda: reg
    yield reg
    app.dependency_overrides.pop(get_registry, None)


@pytest.fixture
def prefs_store(tmp_path):
    prefs = PreferencesStore(tmp_path / "prefs").init()
    app.dependency_overrides[get_preferences_store] = lambda: prefs
    yield prefs
    app.dependency_overrides.pop(get_preferences_store, None)


@pytest.fixture
def client(fake_llm, registry, prefs_store):
    return TestClient(app)


# ---- canned model output ----

def symptom_analysis_json(questions=None, **overrides):
    body = {
        "conditions": [
            {"name": "Tension headache", "likelihood": 60, "description": "Muscle tension", "severity": "Low"},
            {"name": "Migraine", "likelihood": 30, "description": "Recurring headache", "severity": "Medium"},
        ],
        "riskAssessment": {"overall": "Low", "urgency": "Monitor at home", "timeframe": "A few days"},
        "recommendations": ["Rest in a dark room"],
        "homeRemedies": ["Cold compress"],
        "redFlags": ["Sudden severe headache"],
        "similarCases": [],
        "followUpQuestions": questions if questions is not None else [
            "Do you have a fever?",
            "Is the pain worse in the morning?",
        ],
        "confidence": 0.7,
    }
    body.update(overrides)
    return json.dumps(body)


def prescription_json():
    return json.dumps({
        "prescriptionSummary": {"totalMedications": 2, "complexityLevel": "Low"},
        "medications": [
            {"name": "Amoxicillin", "genericName": "amoxicillin", "dosage": "500 mg"},
            {"name": "Ibuprofen", "genericName": "ibuprofen", "dosage": "200 mg"},
        ],
        "drugInteractions": [
            {"medications": ["Amoxicillin", "Ibuprofen"], "interactionType": "Minor", "description": "None notable"},
        ],
        "sideEffects": {"common": ["Nausea"]},
    })


def recommendations_json(count=3):
    recs = [
        {
            "title": f"Evening walk routine {i}",
            "description": "A short walk outdoors helps reduce stress and lifts your mood.",
            "category": "exercise",
            "priority": "high",
        }
        for i in range(count)
    ]
    return json.dumps({"recommendations": recs})


@pytest.fixture
def canned():
    return SimpleNamespace(
        symptom=symptom_analysis_json,
        prescription=prescription_json,
        recommendations=recommendations_json,
    )
