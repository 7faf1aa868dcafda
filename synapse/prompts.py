"""Prompt assembly for every LLM call the engine makes."""

from config.config_loader import PromptsConfig
from synapse.models import PhaseResult, Persona, RoundPhase, UserContext

_DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "legal": ("법률", "소송", "계약", "legal", "lawsuit", "contract"),
    "medical": ("증상", "질병", "의료", "health", "medical", "symptom", "disease"),
    "financial": ("투자", "주식", "금융", "investment", "financial", "stock"),
    "coding": ("코드", "구현", "프로그래밍", "code", "programming"),
}


def detect_domain(text: str) -> str:
    lowered = text.lower()
    for domain, keywords in _DOMAIN_KEYWORDS.items():
        if any(k in lowered for k in keywords):
            return domain
    return "general"


def persona_directives(persona: Persona, prompts: PromptsConfig) -> str:
    parts = [
        prompts.persona.level.get(persona.level.value, ""),
        prompts.persona.tone.get(persona.tone.value, ""),
        prompts.persona.length.get(persona.length.value, ""),
    ]
    return "\n".join(p for p in parts if p)


def format_previous_phase(previous: PhaseResult, labels: dict[str, str]) -> str:
    """Label each successful output of the previous phase, in registration order."""
    parts = [
        f"[{labels.get(provider, provider).upper()}]\n{output.text}"
        for provider, output in previous.per_provider.items()
        if not output.failed
    ]
    return "\n\n---\n\n".join(parts)


def _domain_block(query_text: str, prompts: PromptsConfig) -> str:
    domain = detect_domain(query_text)
    instruction = prompts.domains.get(domain) or prompts.domains.get("general", "")
    return f"Domain guidance ({domain}):\n{instruction}" if instruction else ""


def build_phase_prompt(
    phase: RoundPhase,
    query_text: str,
    persona: Persona,
    prompts: PromptsConfig,
    previous: PhaseResult | None = None,
    labels: dict[str, str] | None = None,
) -> str:
    sections = [prompts.system.strip(), prompts.phases[phase.value].strip()]
    if phase is RoundPhase.ANSWERER:
        sections.append(f'Question: "{query_text}"')
    else:
        sections.append(f'Original question: "{query_text}"')
        context = format_previous_phase(previous, labels or {}) if previous else ""
        sections.append(f"Previous round results:\n{context or '(no usable results from the previous round)'}")
    sections.append(_domain_block(query_text, prompts))
    sections.append(f"Reader profile:\n{persona_directives(persona, prompts)}")
    return "\n\n".join(s for s in sections if s)


def build_fast_prompt(query_text: str, persona: Persona, prompts: PromptsConfig) -> str:
    sections = [
        prompts.fast.strip(),
        _domain_block(query_text, prompts),
        f"Reader profile:\n{persona_directives(persona, prompts)}",
        f'Question: "{query_text}"',
    ]
    return "\n\n".join(s for s in sections if s)


def build_classification_prompt(
    query_text: str,
    prompts: PromptsConfig,
    user_context: UserContext | None = None,
) -> str:
    context = ""
    if user_context:
        previous = ", ".join(user_context.previous_queries[-3:]) or "none"
        preferred = user_context.preferred_complexity.value if user_context.preferred_complexity else "none"
        expertise = ", ".join(user_context.domain_expertise) or "none"
        context = (
            "User context:\n"
            f"- Previous questions: {previous}\n"
            f"- Preferred complexity: {preferred}\n"
            f"- Domain expertise: {expertise}\n"
            f"- Time constraint: {user_context.time_constraint or 'normal'}\n\n"
        )
    return f'{prompts.classification.strip()}\n\n{context}Question to classify:\n"{query_text}"'


def build_judge_prompt(
    query_text: str,
    answers: dict[str, str],
    labels: dict[str, str],
    prompts: PromptsConfig,
    excerpt_chars: int = 3000,
) -> str:
    blocks = [
        f"[{provider}] {labels.get(provider, provider)}\n{text[:excerpt_chars]}"
        for provider, text in answers.items()
    ]
    return (
        f'{prompts.judge.strip()}\n\nQuestion: "{query_text}"\n\nFinal answers:\n\n'
        + "\n\n---\n\n".join(blocks)
    )
