import logging
from typing import Optional

import httpx
from openai import OpenAI
from sqlalchemy.orm import Session

from app import crud
from app.core.config import OPENAI_TIMEOUT
from app.core.exceptions import EnhancementError, MissingApiKeyError

logger = logging.getLogger(__name__)

PROVIDER = "openai"
COMPLETION_MODEL = "gpt-4o"
TRANSCRIPTION_MODEL = "whisper-1"
TEMPERATURE = 0.7
MAX_TOKENS = 1000

FALLBACK_TEXT = "Failed to enhance prompt"

# --- INSTRUCTION TEMPLATES (aiTool -> promptType) ---
AI_TOOL_PROMPTS = {
    "replit": {
        "create": "Format this prompt for Replit's AI web app creator. Focus on technical details, architecture, and clear instructions for creating a new application.",
        "enhance": "Format this prompt for Replit's AI web app creator. Focus on improving clarity and technical specifications while maintaining the original intent.",
    },
    "cursor": {
        "create": "Format this prompt for Cursor's AI code generation. Emphasize specific implementation details and coding patterns for a new application.",
        "enhance": "Format this prompt for Cursor's AI code generation. Focus on clarifying technical requirements and implementation details.",
    },
    "v0": {
        "create": "Format this prompt for v0.dev's UI generation. Include detailed design specifications, components, and layout structure for a new application.",
        "enhance": "Format this prompt for v0.dev's UI generation. Focus on clarifying design requirements and component specifications.",
    },
}

RUBRIC = """Enhance the following {subject} to be more specific, technical, and effective. Include:
1. Clear architecture/structure
2. Specific technical requirements
3. Design guidelines
4. Success criteria
5. Error handling considerations"""

SCREENSHOT_NOTE = (
    "I'm also providing a screenshot for context. Please analyze it and "
    "incorporate relevant details into the enhanced prompt."
)


def get_tool_instruction(ai_tool: str, prompt_type: str) -> str:
    return AI_TOOL_PROMPTS[ai_tool][prompt_type]


def build_system_prompt(ai_tool: str, prompt_type: str, context: Optional[str] = None) -> str:
    subject = "request" if prompt_type == "create" else "prompt"
    parts = [
        "You are an expert at crafting prompts for AI development tools. "
        + get_tool_instruction(ai_tool, prompt_type),
        RUBRIC.format(subject=subject),
    ]
    if context:
        parts.append(f"Additional Context:\n{context}")
    parts.append("Format the response in a clear, organized way with sections and bullet points.")
    return "\n\n".join(parts)


def build_messages(
    system_prompt: str,
    text: str,
    image_url: Optional[str] = None,
    transcript: Optional[str] = None,
) -> list[dict]:
    """
    Builds the single-turn exchange sent to the completion API.
    The image, when present, wins over the transcript.
    """
    messages = [{"role": "system", "content": system_prompt}]

    if image_url:
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": SCREENSHOT_NOTE},
                {"type": "image_url", "image_url": {"url": image_url}},
                {"type": "text", "text": text},
            ],
        })
    elif transcript is not None:
        messages.append({
            "role": "user",
            "content": f"Voice Input Transcription:\n{transcript}\n\nOriginal Text:\n{text}",
        })
    else:
        messages.append({"role": "user", "content": text})

    return messages


def get_openai_client(db: Session, user_id: int) -> OpenAI:
    record = crud.get_api_key(db, user_id, PROVIDER)
    if not record:
        raise MissingApiKeyError()
    return OpenAI(api_key=record.api_key, timeout=OPENAI_TIMEOUT)


def transcribe_audio(client: OpenAI, voice_url: str) -> str:
    response = httpx.get(voice_url, timeout=OPENAI_TIMEOUT, follow_redirects=True)
    response.raise_for_status()

    filename = voice_url.rsplit("/", 1)[-1].split("?", 1)[0] or "voice.webm"
    transcription = client.audio.transcriptions.create(
        file=(filename, response.content),
        model=TRANSCRIPTION_MODEL,
    )
    return transcription.text


def enhance_prompt(
    db: Session,
    user_id: int,
    text: str,
    ai_tool: str,
    prompt_type: str,
    image_url: Optional[str] = None,
    voice_url: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    system_prompt = build_system_prompt(ai_tool, prompt_type, context)

    with get_openai_client(db, user_id) as client:
        try:
            transcript = None
            if not image_url and voice_url:
                transcript = transcribe_audio(client, voice_url)

            messages = build_messages(system_prompt, text, image_url=image_url, transcript=transcript)

            logger.info(
                "Enhancing prompt for user %s (tool=%s, type=%s, image=%s, voice=%s)",
                user_id, ai_tool, prompt_type, bool(image_url), transcript is not None,
            )
            response = client.chat.completions.create(
                model=COMPLETION_MODEL,
                messages=messages,
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.exception("OpenAI API error for user %s", user_id)
            raise EnhancementError(str(e)) from e

    return content or FALLBACK_TEXT
