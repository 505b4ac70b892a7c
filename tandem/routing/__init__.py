"""Decision engines: rule tables, basic cascade and advanced scoring."""

from tandem.exceptions import ConfigError
from tandem.routing.advanced import AdvancedRulesEngine
from tandem.routing.decision import Decision, DecisionMetadata, DecisionRecord
from tandem.routing.engine import DecisionEngine, RulesEngine
from tandem.routing.patterns import LearnedPattern, PatternCache
from tandem.routing.rules import CORE_RULES, EXTENDED_RULES, RuleTable


def get_engine(name: str = "basic", pattern_cache_size: int = 500) -> DecisionEngine:
    """
    Create a decision engine by name.

    Args:
        name: "basic" or "advanced"
        pattern_cache_size: Learned-pattern capacity (advanced only)

    Raises:
        ConfigError: If the name is unknown
    """
    if name == "basic":
        return RulesEngine()
    if name == "advanced":
        return AdvancedRulesEngine(pattern_cache_size=pattern_cache_size)
    raise ConfigError(f"Unknown decision engine: {name}", {"engine": name})


__all__ = [
    "AdvancedRulesEngine",
    "CORE_RULES",
    "Decision",
    "DecisionEngine",
    "DecisionMetadata",
    "DecisionRecord",
    "EXTENDED_RULES",
    "LearnedPattern",
    "PatternCache",
    "RuleTable",
    "RulesEngine",
    "get_engine",
]
