"""
Prompt template loader.

Templates are .md files next to this module with {{VARIABLE_NAME}}
placeholders. Rendering uses plain string replacement so the JSON examples
inside templates need no escaping.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent
_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z_][A-Z0-9_]*)\}\}")


@lru_cache(maxsize=32)
def load_prompt(template_name: str) -> str:
    """Load a prompt template by name (file name without ``.md``).

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _PROMPTS_DIR / f"{template_name}.md"
    if not path.is_file():
        available = sorted(p.stem for p in _PROMPTS_DIR.glob("*.md"))
        raise FileNotFoundError(
            f"Prompt template '{template_name}' not found at {path}. "
            f"Available templates: {available}"
        )
    return path.read_text(encoding="utf-8")


def render_prompt(template_name: str, **variables: str) -> str:
    """Load a template and fill in {{VARIABLE}} placeholders.

    Variables the template does not use are logged and ignored; placeholders
    left unfilled raise ``ValueError``.
    """
    template = load_prompt(template_name)
    placeholders = set(_PLACEHOLDER_RE.findall(template))
    for name in variables:
        if name not in placeholders:
            logger.warning("Variable '%s' provided but not found in template '%s'", name, template_name)

    rendered = template
    for name, value in variables.items():
        rendered = rendered.replace(f"{{{{{name}}}}}", str(value))

    remaining = _PLACEHOLDER_RE.findall(rendered)
    if remaining:
        raise ValueError(
            f"Unfilled placeholders in template '{template_name}': {sorted(set(remaining))}"
        )
    return rendered
