"""
FormState - Reactive State Models for Form Fields

A reactive state container for form-control fields: each model owns a piece
of state, applies writes through manual or copy-on-write diffing, tracks which
keys changed, and notifies subscribers once per write or batch.
"""

from .capability import DRAFT_SUPPORT, probe_draft_support
from .draft import (
    DictDraft,
    DraftRevokedError,
    FrozenDict,
    FrozenList,
    ListDraft,
    Patch,
    freeze,
    produce,
    thaw,
)
from .factory import ControllerHooks, StateFactory
from .model import BatchContext, StateModel, create_state_model
from .path import FormPath
from .shared import clone, is_equal
from .strategies import DraftPatchStrategy, ManualDiffStrategy, UpdateStrategy
from .subscribers import SubscriberList

__all__ = [
    # Model engine
    "StateModel",
    "create_state_model",
    "BatchContext",
    # Factory contract
    "StateFactory",
    "ControllerHooks",
    # Strategies
    "UpdateStrategy",
    "ManualDiffStrategy",
    "DraftPatchStrategy",
    "DRAFT_SUPPORT",
    "probe_draft_support",
    # Drafts
    "produce",
    "Patch",
    "DictDraft",
    "ListDraft",
    "DraftRevokedError",
    "freeze",
    "thaw",
    "FrozenDict",
    "FrozenList",
    # Helpers
    "FormPath",
    "SubscriberList",
    "is_equal",
    "clone",
]

__version__ = "0.1.0"
