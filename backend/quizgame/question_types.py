from typing import Dict, List, Optional, TypedDict


class QuestionTypeInfo(TypedDict):
	id: str
	name: str
	input_type: str
	multiple_answers: bool
	description: str


_MC4 = "Pick 1 of 4 options"

QUESTION_TYPES: Dict[str, List[QuestionTypeInfo]] = {
	"HEALTH": [
		{"id": "MISSING_NUTRIENT", "name": "สารอาหารที่หายไป", "input_type": "TEXT", "multiple_answers": True,
			"description": "Type the missing nutrient; any accepted answer counts"},
		{"id": "NUTRIENT_FROM_IMAGE", "name": "ภาพนี้ได้สารอาหารอะไร", "input_type": "TEXT", "multiple_answers": True,
			"description": "Type the nutrient shown; any accepted answer counts"},
		{"id": "DISEASE_FROM_IMAGE", "name": "ภาพนี้คือโรคอะไร", "input_type": "MULTIPLE_CHOICE_4", "multiple_answers": False,
			"description": _MC4},
	],
	"COGNITION": [
		{"id": "ILLEGAL_TEXT", "name": "ข้อความผิดกฎหมาย", "input_type": "MULTIPLE_CHOICE_4", "multiple_answers": False,
			"description": _MC4},
		{"id": "ODD_ONE_OUT", "name": "สิ่งของไม่เข้าพวก", "input_type": "TEXT", "multiple_answers": False,
			"description": "Type the item that does not belong"},
	],
	"DIGITAL": [
		{"id": "APP_IDENTITY", "name": "แอปพลิเคชันนี้คืออะไร", "input_type": "MULTIPLE_CHOICE_4", "multiple_answers": False,
			"description": _MC4},
		{"id": "SCAM_TEXT", "name": "ข้อความหลอกลวง", "input_type": "MULTIPLE_CHOICE_4", "multiple_answers": False,
			"description": _MC4},
		{"id": "DONT_SHARE", "name": "ข้อมูลที่ไม่ควรแชร์", "input_type": "MULTIPLE_CHOICE_4", "multiple_answers": False,
			"description": _MC4},
	],
	"FINANCE": [
		{"id": "ARITHMETIC_TARGET", "name": "บวกเลขตามเป้าหมาย", "input_type": "CALCULATION", "multiple_answers": False,
			"description": "Type an expression (e.g. 1+9) that reaches the target"},
		{"id": "MAX_VALUE_STACK", "name": "ธนบัตรกองไหนมากสุด", "input_type": "MULTIPLE_CHOICE_3", "multiple_answers": False,
			"description": "Pick 1 of 3 stacks"},
	],
}


def find_type(category: str, type_id: str) -> Optional[QuestionTypeInfo]:
	for info in QUESTION_TYPES.get(category, []):
		if info["id"] == type_id:
			return info
	return None
