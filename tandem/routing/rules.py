"""
Routing Rules - Declarative tables shared by both decision engines.

Each backend gets one RuleTable (operations, context labels, keywords).
The basic engine reads CORE_RULES; the advanced engine reads EXTENDED_RULES,
which is CORE_RULES plus additions, so no literal list is declared twice.

Workflow templates are step descriptors of the form "<backend label>: <action>".
Their text and ordering are part of the public contract.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from tandem.backends.base import BackendKind

S = BackendKind.STRUCTURING
A = BackendKind.ANALYSIS
H = BackendKind.HYBRID

# Argmax tie-break: earlier wins when scores are equal
TIE_BREAK_ORDER: tuple[BackendKind, ...] = (S, H, A)


@dataclass
class RuleTable:
    """Membership tables for one backend."""

    backend: BackendKind
    operations: list[str] = field(default_factory=list)
    contexts: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    complexity_range: tuple[int, int] = (1, 10)
    confidence_boost: float = 0.0

    def extended(
        self,
        operations: list[str] | None = None,
        contexts: list[str] | None = None,
        keywords: list[str] | None = None,
        **changes: Any,
    ) -> "RuleTable":
        """Return a copy with extra entries appended."""
        return replace(
            self,
            operations=self.operations + (operations or []),
            contexts=self.contexts + (contexts or []),
            keywords=self.keywords + (keywords or []),
            **changes,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend.value,
            "operations": list(self.operations),
            "contexts": list(self.contexts),
            "keywords": list(self.keywords),
            "complexity_range": list(self.complexity_range),
            "confidence_boost": self.confidence_boost,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleTable":
        low, high = data.get("complexity_range", (1, 10))
        return cls(
            backend=BackendKind(data["backend"]),
            operations=list(data.get("operations", [])),
            contexts=list(data.get("contexts", [])),
            keywords=list(data.get("keywords", [])),
            complexity_range=(int(low), int(high)),
            confidence_boost=float(data.get("confidence_boost", 0.0)),
        )

    def stats(self) -> dict[str, int]:
        return {
            "operations": len(self.operations),
            "contexts": len(self.contexts),
            "keywords": len(self.keywords),
        }


# =============================================================================
# MEMBERSHIP TABLES
# Keywords are matched as lowercase substrings; the vocabulary is Portuguese
# because operation descriptions arrive in Portuguese.
# =============================================================================

CORE_RULES: dict[BackendKind, RuleTable] = {
    S: RuleTable(
        backend=S,
        operations=[
            "get-tasks", "get-task", "add-task", "update-task", "remove-task",
            "add-subtask", "update-subtask", "remove-subtask", "clear-subtasks",
            "set-task-status", "move-task", "next-task",
            "add-dependency", "remove-dependency", "fix-dependencies",
            "initialize-project", "parse-prd", "generate",
        ],
        contexts=[
            "project_management", "task_organization", "dependency_management",
            "status_tracking", "project_initialization", "prd_parsing",
        ],
        keywords=[
            "criar tarefa", "listar tarefas", "atualizar status", "dependência",
            "projeto", "subtarefa", "organizar", "estruturar", "planejar",
        ],
    ),
    A: RuleTable(
        backend=A,
        operations=[
            "analyze", "complexity-report", "expand-task", "expand-all",
            "validate-dependencies", "problem-solving", "decision-making",
        ],
        contexts=[
            "problem_analysis", "complex_reasoning", "decision_making",
            "solution_validation", "risk_assessment", "strategy_planning",
        ],
        keywords=[
            "analisar", "complexidade", "problema", "solução", "decisão",
            "avaliar", "validar", "estratégia", "risco", "abordagem",
        ],
    ),
    H: RuleTable(
        backend=H,
        operations=[
            "analyze-and-plan", "smart-next-task", "expand-with-thinking",
            "validate-solution", "intelligent-breakdown", "strategic-planning",
        ],
        contexts=[
            "comprehensive_analysis", "intelligent_planning", "solution_validation",
            "strategic_execution", "complex_project_setup",
        ],
        keywords=[
            "analisar e planejar", "próxima tarefa inteligente", "expandir com análise",
            "validar solução", "planejamento estratégico", "análise completa",
        ],
    ),
}

EXTENDED_RULES: dict[BackendKind, RuleTable] = {
    S: CORE_RULES[S].extended(
        contexts=["workflow_optimization", "resource_allocation"],
        keywords=["gerenciar", "coordenar", "agendar", "priorizar"],
        complexity_range=(1, 5),
        confidence_boost=0.2,
    ),
    A: CORE_RULES[A].extended(
        operations=["risk-assessment", "solution-validation", "strategic-analysis"],
        contexts=["critical_thinking", "innovation", "research"],
        keywords=["investigar", "explorar", "descobrir", "inovar"],
        complexity_range=(6, 10),
        confidence_boost=0.3,
    ),
    H: CORE_RULES[H].extended(
        operations=["comprehensive-review", "optimization-analysis", "integration-planning"],
        contexts=["system_integration", "performance_optimization", "quality_assurance"],
        keywords=["otimizar", "integrar", "coordenar sistemas"],
        complexity_range=(5, 8),
        confidence_boost=0.4,
    ),
}


def copy_rules(rules: dict[BackendKind, RuleTable]) -> dict[BackendKind, RuleTable]:
    """Deep-enough copy so engines can extend their tables independently."""
    return {kind: table.extended() for kind, table in rules.items()}


# =============================================================================
# CLASSIFICATION
# =============================================================================


class MatchKind(Enum):
    """How an operation matched a backend's tables."""

    OPERATION = "operation"  # Operation name listed directly
    CONTEXT = "context"  # context["type"] listed in the context labels
    KEYWORD = "keyword"  # A keyword occurs in operation + description


def classify(operation: str, context: dict[str, Any], table: RuleTable) -> MatchKind | None:
    """
    Check an operation against one backend's tables.

    Returns:
        The first kind of match found, or None
    """
    if operation in table.operations:
        return MatchKind.OPERATION

    context_type = context.get("type")
    if context_type and context_type in table.contexts:
        return MatchKind.CONTEXT

    text = f"{operation} {context.get('description') or ''}".lower()
    if any(keyword in text for keyword in table.keywords):
        return MatchKind.KEYWORD

    return None


def as_number(value: Any) -> float | None:
    """Coerce a context value to a float, or None when absent/unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


# =============================================================================
# BASIC CONTEXT SCORING
# Evaluated uniformly: every rule whose predicate holds adds its weights.
# =============================================================================


@dataclass(frozen=True)
class ScoringRule:
    """A predicate over the context and the weights it contributes."""

    name: str
    predicate: Callable[[dict[str, Any]], bool]
    weights: dict[BackendKind, float]


def _complexity(context: dict[str, Any]) -> float:
    # Zero and missing both mean "not provided"
    return as_number(context.get("complexity")) or 0.0


BASIC_SCORING_RULES: list[ScoringRule] = [
    ScoringRule("high_complexity", lambda c: _complexity(c) > 7, {A: 0.3, H: 0.4}),
    ScoringRule("low_complexity", lambda c: 0 < _complexity(c) < 4, {S: 0.3}),
    ScoringRule("organizational", lambda c: c.get("problemType") == "organizational", {S: 0.4}),
    ScoringRule("analytical", lambda c: c.get("problemType") == "analytical", {A: 0.4}),
    ScoringRule("strategic", lambda c: c.get("problemType") == "strategic", {H: 0.4}),
    ScoringRule("has_dependencies", lambda c: bool(c.get("hasDependencies")), {S: 0.2, H: 0.1}),
    ScoringRule("requires_reasoning", lambda c: bool(c.get("requiresReasoning")), {A: 0.3, H: 0.2}),
]


# =============================================================================
# ADVANCED SCORING TABLES
# =============================================================================

# Upper bound (inclusive) of each complexity bucket and its contributions
COMPLEXITY_BUCKETS: list[tuple[float, dict[BackendKind, float]]] = [
    (3, {S: 0.3}),
    (5, {H: 0.2, S: 0.1}),
    (7, {H: 0.3, A: 0.2}),
    (float("inf"), {A: 0.4, H: 0.2}),
]

DIRECT_OPERATION_BONUS = 0.4
KEYWORD_WEIGHT = 0.2
CONTEXT_LABEL_BONUS = 0.15
HISTORY_WEIGHT = 0.15


@dataclass(frozen=True)
class PriorityFactor:
    """One dimension of the priority matrix."""

    name: str
    weight: float
    scale: tuple[float, float]


PRIORITY_FACTORS: list[PriorityFactor] = [
    PriorityFactor("complexity", 0.30, (1, 10)),
    PriorityFactor("urgency", 0.25, (1, 5)),
    PriorityFactor("impact", 0.20, (1, 5)),
    PriorityFactor("resources", 0.15, (1, 5)),
    PriorityFactor("dependencies", 0.10, (0, 10)),
]

PRIORITY_THRESHOLDS: dict[str, float] = {
    "high": 0.8,
    "medium": 0.6,
    "low": 0.4,
}


# =============================================================================
# WORKFLOW TEMPLATES
# =============================================================================

GENERIC_WORKFLOW_STEP = "Workflow não definido"
CUSTOM_WORKFLOW_STEP = "Workflow personalizado"
EXTREME_COMPLEXITY_STEP = "Sequential Thinking: Análise de complexidade extrema"
DEADLINE_STEP = "TaskMaster: Otimização temporal"

BASIC_WORKFLOWS: dict[str, list[str]] = {
    "analyze-and-plan": [
        "Sequential Thinking: Análise do problema",
        "TaskMaster: Estruturação em tarefas",
        "Sequential Thinking: Validação do plano",
        "TaskMaster: Criação de dependências",
    ],
    "smart-next-task": [
        "TaskMaster: Busca próxima tarefa",
        "Sequential Thinking: Análise de complexidade",
        "Hybrid: Geração de recomendações",
    ],
    "expand-with-thinking": [
        "TaskMaster: Busca tarefa original",
        "Sequential Thinking: Análise profunda",
        "TaskMaster: Criação de subtarefas",
        "Sequential Thinking: Validação da expansão",
    ],
    "validate-solution": [
        "Sequential Thinking: Validação da solução",
        "TaskMaster: Atualização de status",
        "Sequential Thinking: Geração de feedback",
    ],
}

ADVANCED_WORKFLOWS: dict[str, list[str]] = {
    "analyze-and-plan": [
        "Sequential Thinking: Análise inicial do problema",
        "Sequential Thinking: Identificação de componentes",
        "TaskMaster: Estruturação em tarefas",
        "Sequential Thinking: Validação de dependências",
        "TaskMaster: Criação de estrutura final",
        "Hybrid: Otimização do plano",
    ],
    "smart-next-task": [
        "TaskMaster: Busca tarefas disponíveis",
        "Sequential Thinking: Análise de complexidade e contexto",
        "Sequential Thinking: Avaliação de riscos",
        "Hybrid: Geração de recomendações personalizadas",
        "TaskMaster: Atualização de prioridades",
    ],
    "expand-with-thinking": [
        "TaskMaster: Recuperação da tarefa original",
        "Sequential Thinking: Análise profunda de requisitos",
        "Sequential Thinking: Identificação de subtarefas",
        "TaskMaster: Criação de estrutura de subtarefas",
        "Sequential Thinking: Validação de completude",
        "TaskMaster: Definição de dependências",
    ],
}


def get_basic_workflow(operation: str) -> list[str]:
    """Basic hybrid template for an operation (always a fresh list)."""
    return list(BASIC_WORKFLOWS.get(operation, [GENERIC_WORKFLOW_STEP]))


def get_advanced_workflow(operation: str) -> list[str]:
    """Advanced template, falling back to the basic one before the generic step."""
    if operation in ADVANCED_WORKFLOWS:
        return list(ADVANCED_WORKFLOWS[operation])
    if operation in BASIC_WORKFLOWS:
        return list(BASIC_WORKFLOWS[operation])
    return [CUSTOM_WORKFLOW_STEP]


# =============================================================================
# NEXT ACTIONS (single-backend decisions)
# =============================================================================

NEXT_ACTIONS: dict[BackendKind, dict[str, list[str]]] = {
    S: {
        "add-task": ["Validate input", "Create task", "Define dependencies"],
        "get-tasks": ["Fetch tasks", "Filter results", "Sort by priority"],
        "parse-prd": ["Read document", "Extract requirements", "Build task structure"],
    },
    A: {
        "analyze": ["Start analysis", "Break down problem", "Evaluate solutions"],
        "complexity-report": ["Assess complexity", "Identify risks", "Produce report"],
    },
}

DEFAULT_NEXT_ACTIONS: dict[BackendKind, list[str]] = {
    S: ["Run default operation"],
    A: ["Run default analysis"],
}


def get_next_actions(backend: BackendKind, operation: str) -> list[str]:
    table = NEXT_ACTIONS.get(backend, {})
    return list(table.get(operation, DEFAULT_NEXT_ACTIONS.get(backend, [])))
