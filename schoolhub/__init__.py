"""SchoolHub Backend.

School, classroom and student management with a capacity-checked enrollment
engine and a best-effort Redis read cache.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
