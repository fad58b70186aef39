"""abacx: attribute-based access control for Python services.

Quick start::

    from abacx import Ability

    def policy(allow, deny, user):
        allow("read", "document", {"status": ["draft", "published"]})
        allow("update", "document", {"authorId": user["id"]})
        deny("update", "document", {"status": "archived"})

    ability = Ability.for_principal({"id": 7, "role": "editor"}, policy)
    ability.can("update", "document", {"authorId": 7, "status": "draft"})  # True
"""

from __future__ import annotations

from . import core, dsl, storage, store
from .ability import Ability
from .core.builder import PolicyBuilder, define_rules
from .core.cache import AbilityCache, DefaultInMemoryCache
from .core.compiler import PredicateCompiler
from .core.errors import AbacxError, ConfigurationError, ForbiddenError, ValidationError
from .core.evaluator import Decision, Evaluator
from .core.fields import ALL_FIELDS, FieldProjector
from .core.model import Effect, Resource, Rule, RuleStore
from .core.pipeline import PipelineEvaluator, Verdict
from .core.predicate import ALWAYS, NEVER, Predicate
from .core.roles import RolePolicies
from .logging.decision_logger import DecisionLogger
from .storage import FilePolicySource, HotReloader
from .store import RecordPolicy, RuleRecord, load_policy

__version__ = "0.1.0"

__all__ = [
    "ALL_FIELDS",
    "ALWAYS",
    "NEVER",
    "AbacxError",
    "Ability",
    "AbilityCache",
    "ConfigurationError",
    "Decision",
    "DecisionLogger",
    "DefaultInMemoryCache",
    "Effect",
    "Evaluator",
    "FieldProjector",
    "FilePolicySource",
    "ForbiddenError",
    "HotReloader",
    "PipelineEvaluator",
    "PolicyBuilder",
    "Predicate",
    "PredicateCompiler",
    "RecordPolicy",
    "Resource",
    "RolePolicies",
    "Rule",
    "RuleRecord",
    "RuleStore",
    "ValidationError",
    "Verdict",
    "core",
    "define_rules",
    "dsl",
    "load_policy",
    "storage",
    "store",
    "__version__",
]
