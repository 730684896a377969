from types import MappingProxyType

BASE_RULES = (
    "RULES:\n"
    "- Return ONLY plain text (no JSON, markdown, quotes, or formatting)\n"
    "- Preserve all titles and headings exactly as written\n"
    "- Use only regular hyphens (-), never em or en dashes\n"
    "- Keep the original length within 10-15%\n"
)

WRITING_MODES = MappingProxyType({
    "academic": {
        "system": (
            "You rewrite machine-generated text as natural student academic writing.\n"
            + BASE_RULES
            + "- Formal scholarly language, no contractions\n"
            "- Shorter, clearer sentences with smooth transitions\n"
        ),
        "focus": "Use formal scholarly language, no contractions, and smooth transitions.",
        "temperature": 0.8,
        "top_p": 0.9,
    },
    "professional": {
        "system": (
            "You rewrite machine-generated text as natural professional business writing.\n"
            + BASE_RULES
            + "- Clear business language, neutral tone, occasional contractions\n"
        ),
        "focus": "",
        "temperature": 0.8,
        "top_p": 0.9,
    },
    "casual": {
        "system": (
            "You rewrite machine-generated text as relaxed conversational writing.\n"
            + BASE_RULES
            + "- Frequent contractions, personal voice, natural asides\n"
        ),
        "focus": "",
        "temperature": 0.9,
        "top_p": 0.9,
    },
    "creative": {
        "system": (
            "You rewrite machine-generated text as vivid, engaging creative writing.\n"
            + BASE_RULES
            + "- Varied rhythm, imagery, and original phrasing\n"
        ),
        "focus": "",
        "temperature": 0.95,
        "top_p": 0.9,
    },
})

DEFAULT_MODE = "academic"

STYLE_ANALYSIS_SYSTEM = (
    "You analyze writing samples and identify the characteristics that make "
    "each writer's style unique."
)

STYLE_ANALYSIS_PROMPT = (
    "Describe the style of this writing sample: sentence structure, vocabulary, "
    "formality, common transitions, voice, punctuation habits, and tone. "
    "Be concise.\n\n"
    "SAMPLE:\n{sample}\n"
)

HUMANIZE_PROMPT = (
    "Rewrite this text as authentic human {mode} writing.\n"
    "{focus}\n"
    "{style}\n"
    "Original text ({length} characters):\n{text}\n"
)

REFINE_SYSTEM = (
    "You make text read as entirely human-written in a {mode} voice. Never use "
    "em or en dashes. Keep the {mode} tone throughout."
)

REFINE_PROMPT = (
    "Refine this {mode} text so it reads even more naturally.\n"
    + BASE_RULES
    + "Original length was {length} characters.\n"
    "{style}\n"
    "Current text:\n{text}\n"
)

CRITIQUE_SYSTEM = (
    "You are an experienced writing instructor and editor. Give specific, "
    "constructive feedback. Always answer with valid JSON."
)

CRITIQUE_PROMPT = (
    "Critique the text below. Answer with a JSON object:\n"
    '{{"overallScore": 1-10, "feedback": [{{"type": "strength"|"improvement"|"critical", '
    '"category": "grammar"|"clarity"|"structure"|"style"|"coherence"|"vocabulary", '
    '"description": str, "suggestion": str}}], "improvedVersion": str}}\n'
    "Give 4-6 feedback items covering strengths and improvements.\n\n"
    "TEXT:\n{text}\n"
)


def writing_mode(name: str) -> tuple[str, dict]:
    """Resolve a writing mode, falling back to the default for unknown names."""
    if name in WRITING_MODES:
        return name, WRITING_MODES[name]
    return DEFAULT_MODE, WRITING_MODES[DEFAULT_MODE]
