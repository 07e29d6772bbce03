"""
SQL identifier validation.

Procedure and table names come from configuration and are interpolated
into statement text, so only ``name`` or ``schema.name`` made of word
characters (plus SQL Server's ``$ # @``) is accepted.  Quoted or bracketed
names are refused.

ZERO I/O.
"""

import re

from archive_kernel.exceptions import InvalidIdentifierError

SQL_IDENTIFIER = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_$#@]*(\.[A-Za-z_][A-Za-z0-9_$#@]*)?$"
)


def validate_identifier(name: str) -> str:
    """Return ``name`` stripped if it is ``ident`` or ``schema.ident``.

    Raises:
        InvalidIdentifierError: otherwise.
    """
    candidate = name.strip() if isinstance(name, str) else name
    if not isinstance(candidate, str) or not SQL_IDENTIFIER.fullmatch(candidate):
        raise InvalidIdentifierError(str(name))
    return candidate
