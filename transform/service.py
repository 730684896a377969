import json
import logging
import re

from google import genai
from google.genai import types
from google.genai import errors as genai_errors

from core.config import GENAI_API_KEY, GENAI_MODEL
from core.errors import UpstreamFailure
from transform import prompts

logger = logging.getLogger(__name__)

DASHES = re.compile("[–—]")
MAX_OUTPUT_TOKENS = 2500
CRITIQUE_MAX_OUTPUT_TOKENS = 3000

FALLBACK_FEEDBACK = [
    {
        "type": "improvement",
        "category": "clarity",
        "description": "The text shows good potential but could benefit from more detailed analysis.",
        "suggestion": "Consider adding more specific examples and clearer explanations.",
    }
]


def _client(api_key: str | None) -> genai.Client:
    key = api_key or GENAI_API_KEY
    if not key:
        logger.error("[GenAI] No API key configured")
        raise UpstreamFailure("Language model is not configured")
    return genai.Client(api_key=key)


def _generate(client, prompt: str, config: types.GenerateContentConfig) -> str:
    try:
        res = client.models.generate_content(model=GENAI_MODEL, contents=prompt, config=config)
    except genai_errors.APIError as e:
        logger.error(f"[GenAI] Request failed: {e}")
        raise UpstreamFailure()

    text = (res.text or "").strip()
    if not text:
        logger.error("[GenAI] Empty response")
        raise UpstreamFailure()
    return text


def strip_dashes(text: str) -> str:
    return DASHES.sub("-", text)


def analyze_style(client, sample: str) -> str:
    """Best effort: a failed analysis just means no style matching."""
    config = types.GenerateContentConfig(
        system_instruction=prompts.STYLE_ANALYSIS_SYSTEM,
        temperature=0.3,
        max_output_tokens=500,
    )
    try:
        return _generate(client, prompts.STYLE_ANALYSIS_PROMPT.format(sample=sample), config)
    except UpstreamFailure:
        logger.warning("[GenAI] Style analysis failed, continuing without it")
        return ""


def humanize(
    text: str,
    writing_mode: str = prompts.DEFAULT_MODE,
    advanced_mode: bool = False,
    style_sample: str | None = None,
    api_key: str | None = None,
) -> dict:
    client = _client(api_key)
    mode, mode_config = prompts.writing_mode(writing_mode)

    style = ""
    if style_sample and style_sample.strip():
        style = analyze_style(client, style_sample)
    style_block = f"STYLE MATCHING: apply these characteristics:\n{style}\n" if style else ""

    prompt = prompts.HUMANIZE_PROMPT.format(
        mode=mode,
        focus=mode_config["focus"],
        style=style_block,
        length=len(text),
        text=text,
    )
    config = types.GenerateContentConfig(
        system_instruction=mode_config["system"],
        temperature=mode_config["temperature"],
        top_p=mode_config["top_p"],
        max_output_tokens=MAX_OUTPUT_TOKENS,
    )
    result = strip_dashes(_generate(client, prompt, config))

    if advanced_mode:
        refine_prompt = prompts.REFINE_PROMPT.format(
            mode=mode, length=len(text), style=style_block, text=result
        )
        refine_config = types.GenerateContentConfig(
            system_instruction=prompts.REFINE_SYSTEM.format(mode=mode),
            temperature=0.98,
            top_p=0.95,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
        result = strip_dashes(_generate(client, refine_prompt, refine_config))

    return {
        "humanizedText": result.strip(),
        "writingMode": mode,
        "styleMatched": bool(style_sample),
    }


def parse_critique(raw: str) -> dict:
    try:
        critique = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("[GenAI] Critique was not valid JSON, using fallback")
        critique = {
            "overallScore": 7,
            "feedback": FALLBACK_FEEDBACK,
            "improvedVersion": raw,
        }

    if not isinstance(critique, dict) or not critique.get("overallScore") or not critique.get("feedback"):
        logger.error("[GenAI] Critique response is missing required fields")
        raise UpstreamFailure()
    return critique


def critique(text: str, api_key: str | None = None) -> dict:
    client = _client(api_key)
    config = types.GenerateContentConfig(
        system_instruction=prompts.CRITIQUE_SYSTEM,
        temperature=0.3,
        max_output_tokens=CRITIQUE_MAX_OUTPUT_TOKENS,
        response_mime_type="application/json",
    )
    raw = _generate(client, prompts.CRITIQUE_PROMPT.format(text=text), config)
    return parse_critique(raw)


def validate_api_key(api_key: str) -> bool:
    """A key is valid if the model API will list models with it."""
    try:
        next(iter(genai.Client(api_key=api_key).models.list()), None)
    except genai_errors.APIError as e:
        logger.info(f"[GenAI] API key rejected: {e}")
        return False
    return True
