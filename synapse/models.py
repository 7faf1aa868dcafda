"""Pure dataclasses and enums for the Synapse orchestration engine. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


class Complexity(str, Enum):
    STANDARD = "standard"
    ADVANCED = "advanced"


class Level(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class Tone(str, Enum):
    CASUAL = "casual"
    FORMAL = "formal"
    ACADEMIC = "academic"


class Length(str, Enum):
    BRIEF = "brief"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"

    @property
    def retryable(self) -> bool:
        return self not in (ErrorKind.UNAUTHORIZED, ErrorKind.MALFORMED_RESPONSE)


class RoundPhase(str, Enum):
    ANSWERER = "answerer"
    CRITIC = "critic"
    RESEARCHER = "researcher"
    SYNTHESIZER = "synthesizer"

    @property
    def number(self) -> int:
        return list(RoundPhase).index(self) + 1

    @property
    def is_terminal(self) -> bool:
        return self is RoundPhase.SYNTHESIZER


class DomainType(str, Enum):
    ACADEMIC = "Academic"
    GOVERNMENT = "Government"
    NEWS = "News"
    OTHER = "Other"


class Process(str, Enum):
    FAST_VALIDATION = "FastValidation"
    FULL_PROCESS = "FullProcess"


@dataclass(frozen=True)
class Persona:
    level: Level = Level.INTERMEDIATE
    tone: Tone = Tone.FORMAL
    length: Length = Length.DETAILED


@dataclass(frozen=True)
class UserContext:
    previous_queries: tuple[str, ...] = ()
    preferred_complexity: Complexity | None = None
    domain_expertise: tuple[str, ...] = ()
    time_constraint: str | None = None   # "urgent", "normal", "thorough"


@dataclass(frozen=True)
class Query:
    text: str
    requested_complexity: Complexity | None = None
    persona: Persona | None = None
    user_context: UserContext | None = None
    source: str = "cli"                  # "cli" or file path


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ProviderReply:
    text: str
    model: str
    usage: TokenUsage | None = None


@dataclass(frozen=True)
class CallOutcome:
    """Result of a resilient provider call. Failures are data, never raised."""
    provider: str
    model: str
    text: str = ""
    latency_ms: int = 0
    attempts: int = 0
    usage: TokenUsage | None = None
    error_kind: ErrorKind | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None


@dataclass(frozen=True)
class ClassificationResult:
    complexity: Complexity
    confidence: float
    reasoning: str
    estimated_processing_time_sec: float
    suggested_persona: Persona
    recommended_model_plan: dict[str, str]
    ai_error: str | None = None


@dataclass(frozen=True)
class ProviderPhaseOutput:
    text: str
    model: str
    latency_ms: int
    token_usage: TokenUsage | None = None
    failed: bool = False
    error_kind: ErrorKind | None = None
    error: str = ""


@dataclass(frozen=True)
class PhaseResult:
    phase: RoundPhase
    per_provider: dict[str, ProviderPhaseOutput]

    def succeeded(self) -> dict[str, ProviderPhaseOutput]:
        return {p: out for p, out in self.per_provider.items() if not out.failed}


@dataclass
class Source:
    """A citation found in model output. Enriched in place by validation."""
    id: int
    url: str
    is_valid: bool | None = None
    trust_score: int | None = None
    domain_type: DomainType | None = None


@dataclass(frozen=True)
class JudgeVerdict:
    scores: dict[str, int]
    best_provider_id: str | None
    reasoning: str
    strengths: dict[str, list[str]] = field(default_factory=dict)
    concerns: dict[str, list[str]] = field(default_factory=dict)
    fallback: bool = False
    error: str | None = None


@dataclass(frozen=True)
class TeamResult:
    provider_id: str
    name: str
    model_used: str
    score: int
    strengths: list[str]
    concerns: list[str]
    final_answer_text: str


@dataclass(frozen=True)
class FinalAnswer:
    summary: list[str]
    evidence: list[str]
    sources: list[str]
    check_list: list[str]
    content: str = ""


@dataclass(frozen=True)
class Metadata:
    complexity: Complexity
    total_rounds: int
    processing_time_ms: int
    confidence_score: int
    process: Process
    total_tokens_used: int = 0


@dataclass(frozen=True)
class SynapseResult:
    final_answer: FinalAnswer
    teams: list[TeamResult]
    sources: list[Source]
    metadata: Metadata
    classification: ClassificationResult | None = None
    judge: JudgeVerdict | None = None
    phases: list[PhaseResult] = field(default_factory=list)
