"""Answer grading.

Each input type has its own equivalence rule:

- TEXT answers are normalized (case, whitespace, punctuation, Unicode form) and
  accepted if they match any of the question's accepted answers.
- MULTIPLE_CHOICE answers must equal the first accepted answer exactly. The
  client sends back the literal option value it rendered.
- CALCULATION answers are arithmetic expressions evaluated by a small parser and
  compared against the target value within ``CALCULATION_TOLERANCE``.

Anything the player types can only ever make an answer incorrect. Broken
question records raise ``CallerError``.
"""
from __future__ import annotations
import math
import re
import unicodedata
from typing import Iterable, List, Tuple

from .errors import CallerError
from .types import GradeResult, InputType, MULTIPLE_CHOICE_TYPES, Question


CALCULATION_TOLERANCE = 0.001
MAX_EXPRESSION_DEPTH = 64

_PUNCTUATION_RE = re.compile(r"[.,!?;:'\"]")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_ARITHMETIC_RE = re.compile(r"[^0-9+\-*/().\s]")
_TOKEN_RE = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(.))")


def normalize_text(text: str) -> str:
	value = (text or "").casefold()
	value = _PUNCTUATION_RE.sub("", value)
	value = _WHITESPACE_RE.sub(" ", value).strip()
	return unicodedata.normalize("NFD", value)


def sanitize_expression(text: str) -> str:
	return _NON_ARITHMETIC_RE.sub("", text or "").strip()


class ExpressionError(ValueError):
	pass


class _Parser:
	# expr   := term (("+" | "-") term)*
	# term   := factor (("*" | "/") factor)*
	# factor := ("+" | "-")* (number | "(" expr ")")

	def __init__(self, expression: str) -> None:
		self.tokens = self._tokenize(expression)
		self.pos = 0
		self.depth = 0

	@staticmethod
	def _tokenize(expression: str) -> List[str]:
		tokens: List[str] = []
		for number, symbol in _TOKEN_RE.findall(expression):
			if number:
				tokens.append(number)
			elif symbol.strip():
				tokens.append(symbol)
		return tokens

	def _peek(self) -> str | None:
		return self.tokens[self.pos] if self.pos < len(self.tokens) else None

	def _take(self) -> str:
		tok = self._peek()
		if tok is None:
			raise ExpressionError("unexpected end of expression")
		self.pos += 1
		return tok

	def parse(self) -> float:
		if not self.tokens:
			raise ExpressionError("empty expression")
		value = self._expr()
		if self._peek() is not None:
			raise ExpressionError(f"unexpected token {self._peek()!r}")
		return value

	def _expr(self) -> float:
		value = self._term()
		while self._peek() in ("+", "-"):
			op = self._take()
			rhs = self._term()
			value = value + rhs if op == "+" else value - rhs
		return value

	def _term(self) -> float:
		value = self._factor()
		while self._peek() in ("*", "/"):
			op = self._take()
			rhs = self._factor()
			if op == "*":
				value = value * rhs
			else:
				if rhs == 0:
					raise ExpressionError("division by zero")
				value = value / rhs
		return value

	def _factor(self) -> float:
		sign = 1.0
		while self._peek() in ("+", "-"):
			if self._take() == "-":
				sign = -sign
		tok = self._take()
		if tok == "(":
			self.depth += 1
			if self.depth > MAX_EXPRESSION_DEPTH:
				raise ExpressionError("expression nested too deeply")
			value = self._expr()
			if self._take() != ")":
				raise ExpressionError("missing closing parenthesis")
			self.depth -= 1
			return sign * value
		if tok[0].isdigit() or (tok[0] == "." and len(tok) > 1):
			return sign * float(tok)
		raise ExpressionError(f"unexpected token {tok!r}")


def evaluate_expression(expression: str) -> float:
	"""Evaluate ``+ - * / ( )`` arithmetic over decimal numbers.

	Raises ``ExpressionError`` for malformed input or a non-finite result.
	"""
	value = _Parser(expression).parse()
	if not math.isfinite(value):
		raise ExpressionError("result is not finite")
	return value


def _accepted_answers(question: Question) -> List[str]:
	if not question.correct_answers:
		raise CallerError(f"question {question.id} has no accepted answers")
	return question.correct_answers


def _grade_text(question: Question, submitted: str) -> GradeResult:
	accepted = {normalize_text(a) for a in _accepted_answers(question)}
	normalized = normalize_text(submitted)
	return GradeResult(is_correct=normalized in accepted, normalized_answer=normalized)


def _grade_multiple_choice(question: Question, submitted: str) -> GradeResult:
	expected = _accepted_answers(question)[0]
	return GradeResult(is_correct=submitted == expected, normalized_answer=submitted)


def _grade_calculation(question: Question, submitted: str) -> GradeResult:
	if question.target_value is None:
		raise CallerError(f"question {question.id} has no target value")
	expression = sanitize_expression(submitted)
	try:
		value = evaluate_expression(expression)
	except ExpressionError:
		return GradeResult(is_correct=False, normalized_answer=expression)
	is_correct = abs(value - question.target_value) < CALCULATION_TOLERANCE
	return GradeResult(is_correct=is_correct, normalized_answer=expression)


def grade(question: Question, submitted: str | None) -> GradeResult:
	text = submitted if submitted is not None else ""
	input_type = question.input_type
	if input_type == InputType.TEXT.value:
		return _grade_text(question, text)
	if input_type in MULTIPLE_CHOICE_TYPES:
		return _grade_multiple_choice(question, text)
	if input_type == InputType.CALCULATION.value:
		return _grade_calculation(question, text)
	return GradeResult(is_correct=False, normalized_answer=text)


def grade_batch(items: Iterable[Tuple[Question, str | None]]) -> List[GradeResult]:
	return [grade(question, submitted) for question, submitted in items]
