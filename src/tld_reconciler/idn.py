"""
IDN label helpers.

Converts single TLD labels between their ASCII-compatible (xn--) form and
their native Unicode form using the idna library, and classifies labels by
encoding.
"""

from typing import Optional

import idna

from .enums import IdnFormat
from .models import IdnPair


ACE_PREFIX = "xn--"


def is_punycode(label: str) -> bool:
    """Check whether a label carries the ASCII-compatible encoding prefix."""
    return label.lower().startswith(ACE_PREFIX)


def has_non_ascii(label: str) -> bool:
    return any(ord(c) > 127 for c in label)


def is_idn(label: str) -> bool:
    """
    Check whether a label is an internationalized domain name.

    A label is an IDN when it is Punycode-prefixed or contains any
    non-ASCII code point.
    """
    return is_punycode(label) or has_non_ascii(label)


def get_idn_format(label: str) -> Optional[IdnFormat]:
    """
    Classify the encoding an IDN label is written in.

    Returns:
        IdnFormat.ASCII for xn-- labels, IdnFormat.UNICODE for native labels,
        None for plain ASCII labels
    """
    if is_punycode(label):
        return IdnFormat.ASCII
    if has_non_ascii(label):
        return IdnFormat.UNICODE
    return None


def to_unicode(label: str) -> str:
    """
    Decode an ASCII-compatible label to Unicode.

    Args:
        label: Label such as 'xn--kpry57d'

    Returns:
        The Unicode form (e.g. '台灣')

    Raises:
        UnicodeError: If the label is not valid Punycode (idna.IDNAError
            is a subclass)
    """
    return idna.decode(label)


def to_ascii(label: str) -> str:
    """
    Encode a label to its ASCII-compatible form.

    Args:
        label: Label such as '台灣'

    Returns:
        The ASCII form (e.g. 'xn--kpry57d')

    Raises:
        UnicodeError: If the label cannot be IDNA-encoded
    """
    return idna.encode(label, uts46=True).decode("ascii")


def canonical_label(label: str) -> str:
    """
    Return the form a label is stored under in the dataset.

    Native Unicode labels map to their ASCII-compatible form; labels that
    cannot be encoded, and ASCII labels, are returned unchanged.
    """
    if not has_non_ascii(label):
        return label
    try:
        return to_ascii(label)
    except UnicodeError:
        return label


def idn_pair(label: str) -> Optional[IdnPair]:
    """
    Compute the ASCII/Unicode pair for a label.

    Punycode labels are decoded, native Unicode labels are encoded, plain
    ASCII labels have no pair. When the conversion fails both sides of the
    pair are the original label.

    Args:
        label: Label in either form

    Returns:
        IdnPair, or None for a non-IDN label
    """
    if is_punycode(label):
        try:
            return IdnPair(ascii=label, unicode=to_unicode(label))
        except UnicodeError:
            return IdnPair(ascii=label, unicode=label)

    if has_non_ascii(label):
        try:
            return IdnPair(ascii=to_ascii(label), unicode=label)
        except UnicodeError:
            return IdnPair(ascii=label, unicode=label)

    return None


def alternate_form(label: str) -> Optional[str]:
    """
    Return the other encoding of an IDN label, if it can be computed.

    Args:
        label: Label in either form

    Returns:
        The counterpart form, or None for non-IDN labels and failed conversions
    """
    pair = idn_pair(label)
    if pair is None:
        return None
    other = pair.unicode if is_punycode(label) else pair.ascii
    return other if other != label else None
