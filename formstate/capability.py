"""
Draft capability probe.

Decides once per process whether copy-on-write drafts are usable. Models take
the result as their default and accept an explicit `draft_support=` override,
so nothing downstream reads this module implicitly.
"""

import logging
import os

from .draft import produce

DISABLE_ENV_VAR = "FORMSTATE_DISABLE_DRAFTS"
_TRUTHY = ("1", "true", "yes", "on")


def probe_draft_support() -> bool:
    """Return True when drafts commit correctly and are not disabled by env."""
    if os.environ.get(DISABLE_ENV_VAR, "").strip().lower() in _TRUTHY:
        logging.debug(f"Draft support disabled via {DISABLE_ENV_VAR}")
        return False

    patches = []
    try:
        result = produce(
            {"probe": 0}, lambda draft: draft.__setitem__("probe", 1), patches.extend
        )
    except Exception as e:
        logging.debug(f"Draft probe failed, falling back to manual diffing: {e}")
        return False

    return result == {"probe": 1} and len(patches) == 1


DRAFT_SUPPORT = probe_draft_support()
