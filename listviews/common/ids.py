"""Epoch identifier helpers."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

_SEQUENCE = itertools.count(1)


def generate_epoch_id() -> str:
    now = datetime.now(tz=timezone.utc)
    # Sequence suffix keeps ids distinct within the same microsecond.
    return now.strftime("epoch-%Y%m%dT%H%M%S%fZ") + f"-{next(_SEQUENCE)}"
