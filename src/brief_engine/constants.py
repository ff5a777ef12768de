"""Brief engine constants shared across the SDK.

The session TTL can be overridden via an environment variable so that
deployments can tune abandonment without code changes.
"""

import os
from pathlib import Path

# Abandoned sessions are evicted by the store this many seconds after the
# last write.  Overridable via BRIEF_SESSION_TTL_SECONDS.
SESSION_TTL_SECONDS = int(os.getenv("BRIEF_SESSION_TTL_SECONDS", str(60 * 60 * 24)))

# Reserved marker in selected_options: the user picked the "other" row and
# the free-text value is still pending.
OTHER_SENTINEL = "__other__"

# Multi-select answers are stored as the selection joined with this.
ANSWER_SEPARATOR = ", "

# Report placeholder for a question without a stored answer.
MISSING_ANSWER_PLACEHOLDER = "—"

# Keyboard markers for selected / unselected multi-select rows.
CHECKED_MARK = "✅"
UNCHECKED_MARK = "⬜"

# Packaged questionnaire and jinja2 templates.
DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "korner_brief.yaml"
TEMPLATE_DIR = Path(__file__).parent / "templates"
