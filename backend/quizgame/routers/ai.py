from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..gemini_client import AIServiceError, GeminiClient
from ..models import User
from ..settings import settings
from .auth import get_current_user

router = APIRouter(prefix="/ai", tags=["ai"])
logger = logging.getLogger(__name__)

ANALYZE_FALLBACK = {
	"th": (
		"ขออภัย ระบบ AI กำลังประมวลผลหนัก กรุณาลองใหม่อีกครั้งในภายหลัง 🙏\n\n"
		"ในระหว่างนี้ ขอแสดงความยินดีกับผลคะแนนของคุณ! คุณทำได้ดีมาก จงภูมิใจในความพยายามและพัฒนาต่อไป 💪✨\n\n"
		"คำแนะนำทั่วไป:\n"
		"• ฝึกฝนอย่างสม่ำเสมอเพื่อพัฒนาทักษะ\n"
		"• ทบทวนข้อที่ตอบผิดเพื่อเรียนรู้\n"
		"• ตั้งเป้าหมายที่ท้าทายแต่เป็นไปได้\n"
		"• อย่าลืมพักผ่อนให้เพียงพอ"
	),
	"en": (
		"Sorry, the AI system is currently busy. Please try again later. 🙏\n\n"
		"In the meantime, congratulations on your score! You did great work. "
		"Be proud of your efforts and keep improving! 💪✨\n\n"
		"General tips:\n"
		"• Practice regularly to develop skills\n"
		"• Review incorrect answers to learn\n"
		"• Set challenging but achievable goals\n"
		"• Remember to get adequate rest"
	),
}

MOTIVATE_FALLBACK = {
	"th": "ยอดเยี่ยม! คุณทำได้ดีมาก จงภูมิใจในความพยายามของตัวเอง ทุกคะแนนคือก้าวหนึ่งสู่ความสำเร็จ เล่นต่อไปเพื่อพัฒนาตัวเองให้ดียิ่งขึ้น! 💪✨",
	"en": "Excellent work! Be proud of your efforts. Every point is a step towards success. Keep playing to improve even more! 💪✨",
}

AI_ERRORS = (AIServiceError, httpx.HTTPError)


async def get_ai_client() -> AsyncIterator[Optional[GeminiClient]]:
	"""Yield a Gemini client, or None when no API key is configured."""
	if not settings.gemini_api_key:
		yield None
		return
	async with GeminiClient() as client:
		yield client


def _locale(value: Optional[str]) -> str:
	return "en" if value == "en" else "th"


class AnalyzeRequest(BaseModel):
	prompt: Optional[str] = None
	session_id: Optional[str] = None
	locale: Optional[str] = None


class ChatRequest(BaseModel):
	message: Optional[str] = None
	# Gemini style turns: {"role": "user"|"model", "parts": [{"text": ...}]}
	context: List[Dict[str, Any]] = Field(default_factory=list)


class SuggestRequest(BaseModel):
	weak_categories: List[str] = Field(default_factory=list)
	user_level: str = "beginner"
	locale: str = "th"


class MotivateRequest(BaseModel):
	score: int = 0
	accuracy: float = 0
	previous_score: Optional[int] = None
	locale: str = "th"


@router.post("/analyze")
async def analyze(req: AnalyzeRequest, user: User = Depends(get_current_user), client: Optional[GeminiClient] = Depends(get_ai_client)):
	if not req.prompt:
		raise HTTPException(status_code=400, detail="Prompt is required")
	# Thai prompts ask to "วิเคราะห์" (analyze); anything else is answered in English
	locale = req.locale or ("th" if "วิเคราะห์" in req.prompt else "en")
	fallback = ANALYZE_FALLBACK[_locale(locale)]
	if client is None:
		return {"success": False, "analysis": fallback, "error": "AI service not configured"}
	try:
		text = await client.generate(req.prompt, temperature=0.9, max_output_tokens=1024)
	except AI_ERRORS as e:
		logger.warning("AI analysis failed for %s: %s", user.username, e)
		return {"success": False, "analysis": fallback, "error": "AI service temporarily unavailable"}
	return {"success": True, "analysis": text, "session_id": req.session_id}


@router.post("/chat")
async def chat(req: ChatRequest, user: User = Depends(get_current_user), client: Optional[GeminiClient] = Depends(get_ai_client)):
	if not req.message:
		raise HTTPException(status_code=400, detail="Message is required")
	if client is None:
		raise HTTPException(status_code=503, detail="AI service not configured")
	try:
		text = await client.chat(req.message, req.context, temperature=0.9, max_output_tokens=500)
	except AI_ERRORS as e:
		logger.warning("AI chat failed for %s: %s", user.username, e)
		raise HTTPException(status_code=502, detail="Failed to process chat message")
	return {"success": True, "response": text}


@router.post("/suggest")
async def suggest(req: SuggestRequest, user: User = Depends(get_current_user), client: Optional[GeminiClient] = Depends(get_ai_client)):
	if client is None:
		raise HTTPException(status_code=503, detail="AI service not configured")
	weak = ", ".join(req.weak_categories) or "-"
	if _locale(req.locale) == "th":
		prompt = (
			f"ผู้เล่นมีความอ่อนในหมวดหมู่: {weak}\n"
			f"ระดับผู้เล่น: {req.user_level}\n\n"
			"แนะนำหัวข้อหรือทักษะที่ควรฝึกฝนเพิ่มเติม พร้อมเหตุผล (ตอบสั้นๆ ไม่เกิน 100 คำ)"
		)
	else:
		prompt = (
			f"Player is weak in categories: {weak}\n"
			f"Player level: {req.user_level}\n\n"
			"Suggest topics or skills to practice, with reasons (keep it brief, max 100 words)"
		)
	try:
		text = await client.generate(prompt)
	except AI_ERRORS as e:
		logger.warning("AI suggestions failed for %s: %s", user.username, e)
		raise HTTPException(status_code=502, detail="Failed to generate suggestions")
	return {"success": True, "suggestions": text}


@router.post("/motivate")
async def motivate(req: MotivateRequest, user: User = Depends(get_current_user), client: Optional[GeminiClient] = Depends(get_ai_client)):
	locale = _locale(req.locale)
	fallback = MOTIVATE_FALLBACK[locale]
	if client is None:
		return {"success": True, "message": fallback}
	improvement = req.score - req.previous_score if req.previous_score else 0
	if locale == "th":
		lines = [
			"สร้างข้อความให้กำลังใจผู้เล่นเกมการเรียนรู้:",
			f"คะแนนปัจจุบัน: {req.score}",
			f"ความแม่นยำ: {req.accuracy:g}%",
		]
		if improvement > 0:
			lines.append(f"พัฒนาขึ้น: +{improvement} คะแนน")
		lines.append("\nให้กำลังใจอย่างจริงใจ สร้างแรงบันดาลใจ และแนะนำให้เล่นต่อ (40-60 คำ)")
	else:
		lines = [
			"Create motivational message for learning game player:",
			f"Current score: {req.score}",
			f"Accuracy: {req.accuracy:g}%",
		]
		if improvement > 0:
			lines.append(f"Improvement: +{improvement} points")
		lines.append("\nProvide genuine encouragement, inspiration, and motivation to keep playing (40-60 words)")
	try:
		text = await client.generate("\n".join(lines))
	except AI_ERRORS as e:
		logger.warning("AI motivation failed for %s: %s", user.username, e)
		return {"success": True, "message": fallback}
	return {"success": True, "message": text}


@router.get("/status")
async def status():
	available = bool(settings.gemini_api_key)
	return {
		"success": True,
		"available": available,
		"model": settings.gemini_model if available else None,
		"fallback": bool(settings.openrouter_api_key),
		"features": {
			"analysis": available,
			"chat": available,
			"suggestions": available,
			"motivation": available,
		},
	}
