import hmac
import time
from typing import Any, Optional

from ..helper.hashing import canonical_json, sha3_512_hex


class FairnessHasher:
    """
    Binds a round's inputs to its outcome.

    The digest is SHA3-512 over the canonical JSON of the user, bet, outcome,
    timestamp and server seed. It shows that the recorded inputs give the
    recorded hash; it is not a commitment made before the draw. Store the
    timestamp next to the hash, it is needed to recompute it.
    """

    def __init__(self, server_seed: str):
        self._server_seed = server_seed

    def hash(
        self,
        user_id: str,
        bet_data: Any,
        outcome: Any,
        timestamp: Optional[int] = None,
    ) -> str:
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        payload = {
            "userId": user_id,
            "betData": bet_data,
            "outcome": outcome,
            "timestamp": timestamp,
            "serverSeed": self._server_seed,
        }
        return sha3_512_hex(canonical_json(payload))

    def verify(
        self,
        verification_hash: str,
        user_id: str,
        bet_data: Any,
        outcome: Any,
        timestamp: int,
    ) -> bool:
        expected = self.hash(user_id, bet_data, outcome, timestamp)
        return hmac.compare_digest(expected, verification_hash)
