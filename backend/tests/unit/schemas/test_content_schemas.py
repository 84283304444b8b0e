"""
Unit Tests for content schemas
Tests for: question shape, module sections, category codes, translation keys
"""
import pytest
from pydantic import ValidationError

from sopmanager.schemas.sop import CategoryCreate
from sopmanager.schemas.training import ModuleCreate, QuestionCreate
from sopmanager.schemas.translation import TranslationKeyCreate, TranslationValueCreate


def question(**overrides) -> dict:
    data = {
        "question_type": "multiple_choice",
        "question": "Which sink is for hand washing?",
        "question_th": "อ่างไหนใช้ล้างมือ",
        "options": ["Prep sink", "Hand sink"],
        "options_th": ["อ่างเตรียมอาหาร", "อ่างล้างมือ"],
        "correct_answer": "1",
    }
    data.update(overrides)
    return data


def section(number: int) -> dict:
    return {
        "section_number": number,
        "title": f"Part {number}",
        "title_th": f"ตอนที่ {number}",
        "content": "Read carefully.",
        "content_th": "อ่านอย่างละเอียด",
    }


class TestQuestionCreate:
    """Test QuestionCreate answer validation"""

    def test_valid_multiple_choice(self):
        q = QuestionCreate(**question())

        assert q.correct_answer == "1"
        assert q.points == 1

    def test_answer_index_out_of_range(self):
        """The answer must point at one of the options"""
        with pytest.raises(ValidationError) as exc_info:
            QuestionCreate(**question(correct_answer="2"))

        assert "index of one of the options" in str(exc_info.value)

    def test_answer_must_be_numeric(self):
        with pytest.raises(ValidationError):
            QuestionCreate(**question(correct_answer="Hand sink"))

    def test_single_option_rejected(self):
        with pytest.raises(ValidationError):
            QuestionCreate(**question(options=["Hand sink"], options_th=[], correct_answer="0"))

    def test_thai_options_must_match(self):
        with pytest.raises(ValidationError) as exc_info:
            QuestionCreate(**question(options_th=["อ่างล้างมือ"]))

        assert "options_th" in str(exc_info.value)

    def test_missing_thai_options_allowed(self):
        q = QuestionCreate(**question(options_th=[]))
        assert q.options_th == []

    @pytest.mark.parametrize("answer", ["true", "false", "TRUE", "False"])
    def test_true_false(self, answer):
        q = QuestionCreate(**question(question_type="true_false", options=[], options_th=[],
                                      correct_answer=answer))
        assert q.correct_answer == answer

    def test_true_false_rejects_other_answers(self):
        with pytest.raises(ValidationError):
            QuestionCreate(**question(question_type="true_false", options=[], options_th=[], correct_answer="yes"))


class TestModuleCreate:
    """Test ModuleCreate defaults and section numbering"""

    def test_defaults(self):
        module = ModuleCreate(title="Opening", title_th="เปิดร้าน")

        assert module.passing_score == 80
        assert module.max_attempts == 3
        assert module.validity_days == 365
        assert module.sections == []

    def test_duplicate_section_numbers(self):
        with pytest.raises(ValidationError) as exc_info:
            ModuleCreate(title="Opening", title_th="เปิดร้าน", sections=[section(1), section(1)])

        assert "section_number must be unique" in str(exc_info.value)

    def test_passing_score_bounds(self):
        with pytest.raises(ValidationError):
            ModuleCreate(title="Opening", title_th="เปิดร้าน", passing_score=101)

    def test_thai_title_required(self):
        with pytest.raises(ValidationError):
            ModuleCreate(title="Opening")


class TestCategoryCreate:

    @pytest.mark.parametrize("code", ["FOOD_SAFETY", "KITCHEN2", "QA"])
    def test_valid_codes(self, code):
        assert CategoryCreate(code=code, name="Name", name_th="ชื่อ").code == code

    @pytest.mark.parametrize("code", ["food_safety", "1KITCHEN", "FOOD-SAFETY", "F"])
    def test_invalid_codes(self, code):
        with pytest.raises(ValidationError):
            CategoryCreate(code=code, name="Name", name_th="ชื่อ")

    def test_color_must_be_hex(self):
        with pytest.raises(ValidationError):
            CategoryCreate(code="SERVICE", name="Service", name_th="บริการ", color="red")


class TestTranslationKeyCreate:

    def test_valid_key(self):
        key = TranslationKeyCreate(
            key_name="dashboard.welcome_title",
            category="dashboard",
            translations=[{"locale": "th", "value": "ยินดีต้อนรับ"}],
        )

        assert key.namespace is None
        assert key.priority.value == "medium"
        assert key.translations[0].locale == "th"

    @pytest.mark.parametrize("key_name", ["1start", "has space", ".leading", "ไทย"])
    def test_invalid_key_names(self, key_name):
        with pytest.raises(ValidationError):
            TranslationKeyCreate(key_name=key_name, category="common")

    def test_unknown_locale(self):
        with pytest.raises(ValidationError):
            TranslationValueCreate(locale="de", value="Hallo")

    def test_empty_value(self):
        with pytest.raises(ValidationError):
            TranslationValueCreate(locale="en", value="")
