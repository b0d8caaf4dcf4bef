"""Cross-answer consistency check for the founder questionnaire."""

from __future__ import annotations

from typing import Any

from readiness.llm.gateway import AIGateway, GatewayError
from readiness.llm.parsing import extract_json
from readiness.llm.prompts import render_prompt
from readiness.observability.logging import get_logger
from readiness.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

MIN_ANSWER_CHARS = 20
MIN_FILLED_ANSWERS = 2


def filled_answers(all_responses: dict[str, Any]) -> list[tuple[str, str]]:
    """Answers long enough to be worth comparing."""
    return [
        (key, value.strip())
        for key, value in all_responses.items()
        if isinstance(value, str) and len(value.strip()) > MIN_ANSWER_CHARS
    ]


def check_answer_consistency(
    gateway: AIGateway,
    company_id: str | None,
    current_question_key: str | None,
    all_responses: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Flag contradictions between questionnaire answers.

    Raises:
        ValueError: company_id, current_question_key or all_responses missing
        GatewayError: gateway failure or empty reply
    """
    if not company_id or not current_question_key or all_responses is None:
        raise ValueError("Missing required fields")

    filled = filled_answers(all_responses)
    if len(filled) < MIN_FILLED_ANSWERS:
        return {"flags": [], "hasEnoughData": False}

    answers = "\n\n".join(f"## {key}\n{sanitize_for_prompt(value)}" for key, value in filled)
    reply = gateway.chat(
        [
            {"role": "system", "content": render_prompt("consistency_system")},
            {
                "role": "user",
                "content": render_prompt(
                    "consistency_user",
                    current_question_key=current_question_key,
                    answers=answers,
                ),
            },
        ],
        function_name="check-answer-consistency",
        temperature=0.2,
    )
    if not reply.content:
        raise GatewayError("No content in AI response", status_code=502)

    try:
        result = extract_json(reply.content)
    except ValueError:
        logger.warning("Consistency reply unparseable, treating as all clear")
        result = {"flags": [], "allClear": True}

    flags = result.get("flags") or []
    all_clear = result.get("allClear")
    return {
        "flags": flags,
        "allClear": all_clear if all_clear is not None else len(flags) == 0,
        "hasEnoughData": True,
    }
