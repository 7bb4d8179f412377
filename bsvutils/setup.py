# Copyright (C) 2025 The bsv-wallet-utils developers
#
# This file is part of bsv-wallet-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of bsv-wallet-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from bsvutils.constants import DEFAULT_SAT_PER_KB
from bsvutils.errors import ConfigurationError

SAT_PER_KB = DEFAULT_SAT_PER_KB


def setup(sat_per_kb: int = DEFAULT_SAT_PER_KB) -> int:
    """Setup bsvutils library with the fee rate used when building transactions.

    Args:
        sat_per_kb: The linear fee rate in satoshis per 1000 bytes
    """
    global SAT_PER_KB
    if isinstance(sat_per_kb, bool) or not isinstance(sat_per_kb, int):
        raise ConfigurationError("sat_per_kb must be an integer")
    if sat_per_kb < 0:
        raise ConfigurationError("sat_per_kb must be non-negative")
    SAT_PER_KB = sat_per_kb
    return SAT_PER_KB


def get_sat_per_kb() -> int:
    global SAT_PER_KB
    return SAT_PER_KB
