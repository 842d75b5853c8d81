"""
Namespace normalization for XML tokens.

The decoder hands out names as a (prefix, local) pair. Word only reads parts
whose names keep the textual ``prefix:local`` form, so every element and
attribute name is folded back into that form before it reaches the encoder.
"""

from ..core.models import Attr, EndElement, Name, StartElement, Token


def fix_name(name: Name) -> Name:
    """
    Fold the prefix into the local part.

    Unprefixed names are returned unchanged rather than with a leading colon,
    which would not be a well-formed XML name.
    """
    if not name.space:
        return Name("", name.local)
    return Name("", f"{name.space}:{name.local}")


def fix_ns(token: Token) -> Token:
    """
    Normalize element and attribute names of a token.

    Args:
        token: Any token variant

    Returns:
        A new StartElement/EndElement with textual names, or the token itself
        for CharData and Other
    """
    if isinstance(token, StartElement):
        return StartElement(
            name=fix_name(token.name),
            attrs=[Attr(fix_name(attr.name), attr.value) for attr in token.attrs],
        )
    if isinstance(token, EndElement):
        return EndElement(name=fix_name(token.name))
    return token


def qualified_name(name: Name) -> str:
    """Textual form of a name, e.g. ``w:t``."""
    return fix_name(name).local


def parse_qualified_name(text: str) -> Name:
    """Split ``prefix:local`` into a Name; text without a colon is unprefixed."""
    space, sep, local = text.partition(":")
    if not sep:
        return Name("", text)
    return Name(space, local)
