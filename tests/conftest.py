import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizgame.db import Base, get_db
from quizgame.main import app
from quizgame.models import Question, QuestionTranslation, User
from quizgame.ratelimit import auth_limiter, game_limiter

PASSWORD = "Passw0rd!"

engine = create_engine(
	"sqlite://",
	connect_args={"check_same_thread": False},
	poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
	db = TestingSessionLocal()
	try:
		yield db
	finally:
		db.close()


@pytest.fixture
def db():
	Base.metadata.create_all(bind=engine)
	session = TestingSessionLocal()
	try:
		yield session
	finally:
		session.close()
		Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[auth_limiter] = lambda: None
	app.dependency_overrides[game_limiter] = lambda: None
	auth_limiter.reset()
	game_limiter.reset()
	yield TestClient(app)
	app.dependency_overrides.clear()


def bearer(tokens):
	return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def signup(client):
	def _signup(username="player1", password=PASSWORD, **extra):
		r = client.post("/auth/signup", json={"username": username, "password": password, **extra})
		assert r.status_code == 201, r.text
		return r.json()
	return _signup


@pytest.fixture
def admin_headers(db, signup):
	tokens = signup("admin1")
	db.query(User).filter(User.id == tokens["user"]["id"]).update({User.role: "ADMIN"})
	db.commit()
	return bearer(tokens)


@pytest.fixture
def make_question(db):
	def _make(
		category="HEALTH",
		input_type="TEXT",
		correct_answers=("vitamin c",),
		target_value=None,
		difficulty=1,
		type_="MISSING_NUTRIENT",
		options=(),
		lang="th",
		text="question",
		is_active=True,
	):
		q = Question(
			category=category,
			type=type_,
			input_type=input_type,
			difficulty=difficulty,
			is_active=is_active,
		)
		q.translations.append(QuestionTranslation(
			lang=lang,
			question_text=text,
			options=list(options),
			correct_answers=list(correct_answers),
			target_value=target_value,
			explanation="because",
		))
		db.add(q)
		db.commit()
		db.refresh(q)
		return q
	return _make
