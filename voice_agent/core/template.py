import re
from typing import List, Mapping

_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}")


def render(template: str, data: Mapping[str, object]) -> str:
    """
    Replaces every literal ``{{key}}`` token in ``template`` with ``data[key]``.

    Substitution is a single pass over the template, so inserted values are
    never re-scanned for placeholders. Tokens whose key is not in ``data`` are
    left untouched.
    """
    if not data:
        return template

    tokens = {"{{%s}}" % key: str(value) for key, value in data.items()}
    # Longest first so a key never shadows a longer key sharing its prefix
    pattern = re.compile("|".join(re.escape(t) for t in sorted(tokens, key=len, reverse=True)))
    return pattern.sub(lambda m: tokens[m.group(0)], template)


def placeholders(template: str) -> List[str]:
    """Ordered, de-duplicated keys of the ``{{key}}`` tokens in a template."""
    seen = []
    for key in _PLACEHOLDER.findall(template):
        if key not in seen:
            seen.append(key)
    return seen
