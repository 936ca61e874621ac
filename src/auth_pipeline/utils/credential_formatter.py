# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Utility for formatting credentials for display in logs.

Access and refresh credentials are bearer secrets, so logs only ever carry
their last 6 characters.
"""

from typing import Optional

VISIBLE_SUFFIX_LENGTH = 6


def mask_credential(credential: Optional[str]) -> str:
    """
    Format a credential for display in logs.

    Args:
        credential: The credential string

    Returns:
        A display-safe string representation of the credential

    Examples:
        >>> mask_credential("validRefreshToken")
        '...hToken'
        >>> mask_credential("short")
        '***'
    """
    if not credential:
        return "<empty>"
    if len(credential) <= VISIBLE_SUFFIX_LENGTH:
        return "***"
    return f"...{credential[-VISIBLE_SUFFIX_LENGTH:]}"
