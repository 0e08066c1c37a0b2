"""Prompt construction for document analysis requests.

Builds the text part of an inference request: a language-specific role
description, instructions tailored to the document type, and the JSON shape
the completion is expected to follow.
"""

import json
from dataclasses import dataclass

from paperkit.schema import DocumentType, Language

# =============================================================================
# Prompt Fragments
# =============================================================================

_ROLE = {
    Language.EN: (
        "You analyze educational documents. Extract and structure the content "
        "of the attached PDF without changing it.\n\n"
        "RULES:\n"
        "1. Copy wording, numbers and symbols exactly as printed\n"
        "2. Keep the original order of sections and questions\n"
        '3. Mark text you cannot read as "UNCLEAR: <best attempt>"\n'
        "4. Do not translate the document"
    ),
    Language.VI: (
        "Bạn phân tích tài liệu giáo dục. Hãy trích xuất và cấu trúc nội dung "
        "của tệp PDF đính kèm mà không thay đổi nội dung gốc.\n\n"
        "QUY TẮC:\n"
        "1. Giữ nguyên từ ngữ, số liệu và ký hiệu\n"
        "2. Giữ nguyên thứ tự các phần và câu hỏi\n"
        '3. Đánh dấu văn bản không đọc được là "KHÔNG RÕ: <dự đoán>"\n'
        "4. Không dịch tài liệu"
    ),
}

_TYPE_HINTS = {
    Language.EN: {
        DocumentType.QUIZ: (
            "QUIZ:\n"
            "- Find numbered questions and keep their numbering\n"
            "- Extract answer options (A, B, C, D)\n"
            "- Record marked correct answers and point values"
        ),
        DocumentType.WORKSHEET: (
            "WORKSHEET:\n"
            "- Find exercise sections and their instructions\n"
            "- Note fill-in-the-blank patterns such as ___\n"
            "- Keep mathematical expressions intact"
        ),
        DocumentType.GENERAL: (
            "GENERAL DOCUMENT:\n"
            "- Extract all text in reading order\n"
            "- Identify sections and subsections\n"
            "- Keep lists and tables recognisable"
        ),
    },
    Language.VI: {
        DocumentType.QUIZ: (
            "TRẮC NGHIỆM:\n"
            "- Tìm các câu hỏi có đánh số và giữ nguyên số thứ tự\n"
            "- Trích xuất các lựa chọn (A, B, C, D)\n"
            "- Ghi lại đáp án đúng và điểm số nếu có"
        ),
        DocumentType.WORKSHEET: (
            "BÀI TẬP:\n"
            "- Tìm các phần bài tập và hướng dẫn\n"
            "- Ghi chú các ô trống như ___\n"
            "- Giữ nguyên biểu thức toán học"
        ),
        DocumentType.GENERAL: (
            "TÀI LIỆU TỔNG QUÁT:\n"
            "- Trích xuất toàn bộ văn bản theo thứ tự đọc\n"
            "- Xác định các phần và phần phụ\n"
            "- Giữ nguyên danh sách và bảng"
        ),
    },
}

_OUTPUT_INTRO = {
    Language.EN: "Respond with JSON only, in exactly this shape:",
    Language.VI: "Chỉ trả về JSON theo đúng định dạng sau:",
}

RESPONSE_SHAPE = {
    "documentStructure": {
        "type": "quiz|worksheet|general",
        "subject": "subject or topic",
        "confidence": 0.9,
        "sections": [
            {
                "id": "section_1",
                "title": "section heading",
                "type": "header|question|answer|instruction|content",
                "content": "exact text",
                "position": {"page": 1, "x": 0, "y": 0, "width": 100, "height": 10},
                "confidence": 0.9,
            }
        ],
        "metadata": {
            "totalPages": 1,
            "language": "en|vi",
            "documentType": "quiz|worksheet|general",
            "extractionConfidence": 0.9,
        },
    },
    "extractedQuestions": [
        {
            "id": "question_1",
            "number": "1",
            "content": "exact question text",
            "type": "multiple_choice|short_answer|essay|fill_blank|true_false",
            "options": ["A. first", "B. second"],
            "correctAnswer": "A. first",
            "points": 1,
            "difficulty": "easy|medium|hard",
            "confidence": 0.9,
        }
    ],
    "extractedContent": {
        "title": "document title",
        "subtitle": "subtitle if any",
        "author": "author if any",
        "course": "course if any",
        "instructions": "general instructions",
        "rawText": "complete extracted text",
    },
}

CONNECTION_TEST_PROMPT = 'Reply with the JSON object {"status": "ok"} and nothing else.'


# =============================================================================
# Builder
# =============================================================================


@dataclass
class PromptConfig:
    """Configuration for prompt building.

    Attributes:
        include_schema: Whether to append the expected JSON shape.
        additional_instructions: Free text appended at the end.
    """

    include_schema: bool = True
    additional_instructions: str | None = None


class PromptBuilder:
    """Builds analysis prompts per document type and language.

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build(DocumentType.QUIZ, Language.EN)
    """

    def __init__(self, config: PromptConfig | None = None):
        self.config = config or PromptConfig()

    def build(
        self,
        document_type: DocumentType | str = DocumentType.GENERAL,
        language: Language | str = Language.EN,
    ) -> str:
        """Assemble the prompt text.

        Args:
            document_type: Kind of document being analyzed.
            language: Document language.

        Returns:
            Prompt text for the inference request.
        """
        document_type = DocumentType(document_type)
        language = Language(language)

        parts = [_ROLE[language], _TYPE_HINTS[language][document_type]]
        if self.config.include_schema:
            shape = json.dumps(RESPONSE_SHAPE, indent=2, ensure_ascii=False)
            parts.append(f"{_OUTPUT_INTRO[language]}\n\n{shape}")
        if self.config.additional_instructions:
            parts.append(
                f"ADDITIONAL INSTRUCTIONS:\n{self.config.additional_instructions}"
            )
        return "\n\n".join(parts)


def build_analysis_prompt(
    document_type: DocumentType | str = DocumentType.GENERAL,
    language: Language | str = Language.EN,
    additional_instructions: str | None = None,
) -> str:
    """Convenience wrapper around PromptBuilder.build."""
    config = PromptConfig(additional_instructions=additional_instructions)
    return PromptBuilder(config).build(document_type, language)
