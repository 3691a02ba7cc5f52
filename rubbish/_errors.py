"""rubbish error codes and the exception class.

Every failure the library reports is a contract violation: a caller bug, a
registry out of sync with the values it is asked about, or a replay queue
that diverged from the walk consuming it.  None of them are retried.
Transient candidate failures inside producers (a regex that won't compile,
a host label IDNA rejects) are not errors; producers loop on those.
"""

from __future__ import annotations

# ── Error codes ──────────────────────────────────────────────
# Grep-friendly; tests compare `.code`, never the message.

ERR_SOURCE: str = "ERR_SOURCE"                      # byte source returned the wrong length
ERR_EMPTY_POOL: str = "ERR_EMPTY_POOL"              # pick from an empty pool
ERR_WEIGHT: str = "ERR_WEIGHT"                      # negative or non-numeric weight
ERR_TOTAL: str = "ERR_TOTAL"                        # weights sum to zero
ERR_SPARSE: str = "ERR_SPARSE"                      # hole in a weight list
ERR_UNKNOWN_SHAPE: str = "ERR_UNKNOWN_SHAPE"        # no shape for a name or a value
ERR_UNKNOWN_SCRIPT: str = "ERR_UNKNOWN_SCRIPT"      # script the codepoint table lacks
ERR_UNENCODABLE: str = "ERR_UNENCODABLE"            # value no draw sequence can produce
ERR_WEAK_MEMBERS: str = "ERR_WEAK_MEMBERS"          # weak container missing from side table
ERR_REPLAY_EXHAUSTED: str = "ERR_REPLAY_EXHAUSTED"  # replay queue ran dry
ERR_REPLAY_LENGTH: str = "ERR_REPLAY_LENGTH"        # draw length mismatch
ERR_REPLAY_REASON: str = "ERR_REPLAY_REASON"        # draw reason mismatch
ERR_REPLAY_LEFTOVER: str = "ERR_REPLAY_LEFTOVER"    # draws left after a full walk


class ContractError(Exception):
    """Raised when a caller, a registry or a replay queue breaks its contract.

    The `.code` attribute is one of the ERR_* strings above.
    """

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(msg or code)
        self.code = code
