from __future__ import annotations
from dataclasses import dataclass
import logging
from google import genai

logger = logging.getLogger(__name__)

@dataclass
class LLMClient:
    api_key: str
    model: str = "gemini-3-flash-preview"

    def _client(self):
        return genai.Client(api_key=self.api_key)

    def explain_mistake(
        self,
        *,
        problem_type: str,
        question: str,
        story: str | None,
        canonical: str,
        user_answer: str,
        difficulty: str,
        ui_lang: str,
    ) -> str:
        logger.info(
            "llm_usage: explain_mistake model=%s problem_type=%s difficulty=%s ui_lang=%s question_len=%s",
            self.model,
            problem_type,
            difficulty,
            ui_lang,
            len(question),
        )
        lang = "Ukrainian" if ui_lang == "uk" else "English"
        story_block = f"Story: {story}\n" if story else ""
        contents = f"""You are a friendly math tutor for young children (ages 5-8).
Activity: {problem_type}
Difficulty: {difficulty}
{story_block}Question: {question}
Child's answer: {user_answer}
Correct answer: {canonical}

Explain in {lang}, in 1-3 short sentences, how to get the correct answer.
Use simple words and small numbers. Be encouraging. Never scold.
Do not use Markdown.
"""
        client = self._client()
        resp = client.models.generate_content(model=self.model, contents=contents)
        return (resp.text or "").strip()

def maybe_explain(llm: LLMClient | None, **kwargs) -> str | None:
    """Ask the model for an explanation; None when there is no client or the call fails."""
    if llm is None:
        return None
    try:
        out = llm.explain_mistake(**kwargs)
    except Exception:
        logger.exception("llm_explain_failed problem_type=%s", kwargs.get("problem_type"))
        return None
    return out or None
