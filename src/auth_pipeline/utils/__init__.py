# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/auth_pipeline/utils/__init__.py

from .credential_formatter import mask_credential

__all__ = ['mask_credential']
