# fsmgen/codegen/naming.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Pure transformations from declared names to identifiers used in generated
code. Output depends only on the input string.
"""

import keyword
from typing import List

from fsmgen.interfaces.types import is_identifier

_DELIMITERS = frozenset("_- .")

# Names every generated module defines or imports at module level.
RESERVED_NAMES = frozenset(
    {
        "InvalidTransition",
        "GuardRejected",
        "ActionFailed",
        "_ReadWriteLock",
        "Any",
        "Callable",
        "Dict",
        "FrozenSet",
        "Optional",
        "Tuple",
        "Union",
        "Enum",
    }
)


def split_words(name: str) -> List[str]:
    """
    Split a name on ``_``, ``-``, space and ``.`` and on lowercase to
    uppercase boundaries.

    >>> split_words("orderApproved_now")
    ['order', 'Approved', 'now']
    """
    words: List[str] = []
    current: List[str] = []
    previous = ""
    for ch in name:
        if ch in _DELIMITERS:
            if current:
                words.append("".join(current))
                current = []
            previous = ch
            continue
        if ch.isupper() and previous.islower() and current:
            words.append("".join(current))
            current = []
        current.append(ch)
        previous = ch
    if current:
        words.append("".join(current))
    return words


def pascal_case(name: str) -> str:
    """
    Capitalise each word and concatenate: ``user-logged-in`` becomes
    ``UserLoggedIn``. Letters after the first in a word are lowered.
    """
    return "".join(word[0].upper() + word[1:].lower() for word in split_words(name))


def camel_case(name: str) -> str:
    """Like pascal_case but with the first character lowered."""
    pascal = pascal_case(name)
    if not pascal:
        return pascal
    return pascal[0].lower() + pascal[1:]


def snake_case(name: str) -> str:
    return "_".join(word.lower() for word in split_words(name))


def constant_case(name: str) -> str:
    return "_".join(word.upper() for word in split_words(name))


def is_usable_class_name(identifier: str) -> bool:
    """Return True if identifier can name the generated machine class."""
    return is_identifier(identifier) and identifier not in RESERVED_NAMES


def handler_field_name(name: str) -> str:
    """snake_case of name, with a trailing ``_`` when that is a keyword."""
    field_name = snake_case(name)
    if keyword.iskeyword(field_name):
        field_name += "_"
    return field_name
