from .builder import PolicyBuilder, define_rules
from .cache import AbilityCache, DefaultInMemoryCache, principal_fingerprint
from .compiler import PredicateCompiler, compile_filter
from .conditions import matches
from .errors import AbacxError, ConfigurationError, ForbiddenError, ValidationError
from .evaluator import BaseEvaluator, Decision, Evaluator
from .fields import ALL_FIELDS, FieldProjector, permitted_fields
from .model import ALL, MANAGE, Effect, Resource, Rule, RuleStore
from .pipeline import PipelineEvaluator, Verdict, allow_when, deny_when, rules_step
from .predicate import ALWAYS, NEVER, Predicate
from .roles import RolePolicies

__all__ = [
    "ALL",
    "ALL_FIELDS",
    "ALWAYS",
    "MANAGE",
    "NEVER",
    "AbacxError",
    "AbilityCache",
    "BaseEvaluator",
    "ConfigurationError",
    "Decision",
    "DefaultInMemoryCache",
    "Effect",
    "Evaluator",
    "FieldProjector",
    "ForbiddenError",
    "PipelineEvaluator",
    "PolicyBuilder",
    "Predicate",
    "PredicateCompiler",
    "Resource",
    "RolePolicies",
    "Rule",
    "RuleStore",
    "ValidationError",
    "Verdict",
    "allow_when",
    "compile_filter",
    "define_rules",
    "deny_when",
    "matches",
    "permitted_fields",
    "principal_fingerprint",
    "rules_step",
]
