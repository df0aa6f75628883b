import json
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives.hashes import Hash, SHA3_512

GENESIS_TX = "0" * 128


def sha3_512_hex(data: str) -> str:
    h = Hash(SHA3_512())
    h.update(data.encode())
    return h.finalize().hex()


def canonical_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_encode)


def chain_link(prev_tx: str, body: Mapping[str, Any]) -> str:
    self_hash = sha3_512_hex(canonical_json(body))
    return sha3_512_hex(f"{prev_tx}::{self_hash}")


def _encode(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return {name: getattr(value, name) for name in value.__dataclass_fields__}
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
