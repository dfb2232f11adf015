"""
template.py - Environment variable interpolation

Supported forms:

    $NAME            value of NAME
    ${NAME}          value of NAME
    ${NAME:-default} value of NAME, or ``default`` when unset or empty
    $$               a literal dollar sign

A ``$`` not followed by one of these forms is left as is.
"""

import os
import re
from typing import List, Mapping, Optional

from .errors import ActionError, InputError
from ..utils.file_handler import safe_write_file

_PATTERN = re.compile(
    r"""
    \$(?:
        (?P<escaped>\$)
      | \{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}
      | (?P<named>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)


def find_variables(text: str) -> List[str]:
    """Return the variable names referenced by a template, in order of first use"""
    names: List[str] = []
    for match in _PATTERN.finditer(text):
        name = match.group("braced") or match.group("named")
        if name and name not in names:
            names.append(name)
    return names


def render_template(
    text: str, env: Optional[Mapping[str, str]] = None, strict: bool = False
) -> str:
    """
    Interpolate environment variables into ``text``

    Args:
        text: Template text
        env: Variables to substitute (defaults to os.environ)
        strict: Raise instead of rendering undefined variables as empty

    Raises:
        InputError: In strict mode, listing every undefined variable
    """
    env = os.environ if env is None else env
    missing: List[str] = []

    def replace(match: "re.Match[str]") -> str:
        if match.group("escaped"):
            return "$"

        name = match.group("braced") or match.group("named")
        default = match.group("default")
        value = env.get(name)

        if default is not None:
            return value if value else default
        if value is None:
            if name not in missing:
                missing.append(name)
            return ""
        return value

    rendered = _PATTERN.sub(replace, text)

    if strict and missing:
        raise InputError(f"Undefined template variables: {', '.join(missing)}")

    return rendered


def render_file(
    source: str,
    destination: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    strict: bool = False,
) -> str:
    """
    Render a template file

    Args:
        source: Template path
        destination: Where to write the result; nothing is written when None
        env: Variables to substitute
        strict: Fail on undefined variables

    Returns:
        The rendered text

    Raises:
        InputError: If the template cannot be read or, in strict mode, uses
            undefined variables
        ActionError: If the destination cannot be written
    """
    try:
        with open(source, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read template {source}: {e}")

    rendered = render_template(text, env=env, strict=strict)

    if destination:
        try:
            safe_write_file(destination, rendered)
        except OSError as e:
            raise ActionError(f"Cannot write {destination}: {e}")

    return rendered
