"""Query understanding: intent parsing, entity and scope resolution, routing."""

from .entities import EntityResolution, resolve_aliases, resolve_entities
from .intents import ChatIntent, detect_intent, suggested_questions_for_intent
from .parser import ParsedQuery, QueryPlan, QueryScope, parse_query
from .router import AnalyzerId, IntentRoute, route_intent
from .scope import ResolvedScope, ScopeMode, resolve_scope

__all__ = [
    "AnalyzerId",
    "ChatIntent",
    "EntityResolution",
    "IntentRoute",
    "ParsedQuery",
    "QueryPlan",
    "QueryScope",
    "ResolvedScope",
    "ScopeMode",
    "detect_intent",
    "parse_query",
    "resolve_aliases",
    "resolve_entities",
    "resolve_scope",
    "route_intent",
    "suggested_questions_for_intent",
]
