from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, Text, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class User(Base):
	__tablename__ = "users"
	id = Column(String(32), primary_key=True, default=_new_id)
	username = Column(String(128), unique=True, index=True, nullable=False)
	# Anonymous players have no password
	password_hash = Column(String(256), nullable=True)
	role = Column(String(16), default="PLAYER", nullable=False)  # PLAYER / ADMIN
	lang = Column(String(8), default="th", nullable=False)
	is_active = Column(Boolean, default=True, nullable=False)
	is_anonymous = Column(Boolean, default=False, nullable=False)
	last_login_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")


class Profile(Base):
	__tablename__ = "profiles"
	user_id = Column(String(32), ForeignKey("users.id"), primary_key=True)
	display_name = Column(String(128), nullable=True)
	avatar_url = Column(String(512), nullable=True)
	total_score = Column(Integer, default=0, nullable=False)
	games_played = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	user = relationship("User", back_populates="profile")


class CategoryMastery(Base):
	__tablename__ = "category_mastery"
	__table_args__ = (UniqueConstraint("user_id", "category", name="uq_mastery_user_category"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	category = Column(String(16), nullable=False)
	correct_count = Column(Integer, default=0, nullable=False)
	total_count = Column(Integer, default=0, nullable=False)
	percent = Column(Integer, default=0, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Refresh token jti, or the QR token itself
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	kind = Column(String(16), default="refresh", nullable=False)  # refresh / qr
	expires_at = Column(DateTime, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Question(Base):
	__tablename__ = "questions"
	id = Column(String(32), primary_key=True, default=_new_id)
	category = Column(String(16), index=True, nullable=False)
	type = Column(String(32), nullable=False)
	input_type = Column(String(32), nullable=False)
	difficulty = Column(Integer, default=1, nullable=False)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	translations = relationship("QuestionTranslation", back_populates="question", cascade="all, delete-orphan")

	def translation(self, lang: str) -> "QuestionTranslation | None":
		for t in self.translations:
			if t.lang == lang:
				return t
		return None


class QuestionTranslation(Base):
	__tablename__ = "question_translations"
	__table_args__ = (UniqueConstraint("question_id", "lang", name="uq_translation_question_lang"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	question_id = Column(String(32), ForeignKey("questions.id"), index=True, nullable=False)
	lang = Column(String(8), nullable=False)
	question_text = Column(Text, default="", nullable=False)
	options = Column(JSON, default=list, nullable=False)
	correct_answers = Column(JSON, default=list, nullable=False)
	target_value = Column(Float, nullable=True)
	explanation = Column(Text, default="", nullable=False)
	image_url = Column(String(512), nullable=True)

	question = relationship("Question", back_populates="translations")


class GameResult(Base):
	__tablename__ = "game_results"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	category = Column(String(16), nullable=False)  # a category or MIXED
	lang = Column(String(8), default="th", nullable=False)
	score = Column(Integer, default=0, nullable=False)
	total_questions = Column(Integer, default=0, nullable=False)
	correct_answers = Column(Integer, default=0, nullable=False)
	time_spent = Column(Float, default=0, nullable=False)
	is_completed = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	completed_at = Column(DateTime, nullable=True, index=True)
	# Question ids handed out by /game/start; only these are graded on completion
	issued_question_ids = Column(JSON, default=list, nullable=False)

	game_questions = relationship("GameQuestion", back_populates="game_result", cascade="all, delete-orphan")


class GameQuestion(Base):
	__tablename__ = "game_questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	game_result_id = Column(String(32), ForeignKey("game_results.id"), index=True, nullable=False)
	question_id = Column(String(32), ForeignKey("questions.id"), index=True, nullable=False)
	user_answer = Column(Text, default="", nullable=False)
	is_correct = Column(Boolean, default=False, nullable=False)
	points_awarded = Column(Integer, default=0, nullable=False)
	time_spent = Column(Float, default=0, nullable=False)

	game_result = relationship("GameResult", back_populates="game_questions")
	question = relationship("Question")


class Achievement(Base):
	__tablename__ = "achievements"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	type = Column(String(32), nullable=False)
	category = Column(String(16), nullable=True)
	is_completed = Column(Boolean, default=True, nullable=False)
	unlocked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
