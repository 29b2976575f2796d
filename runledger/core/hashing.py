import hashlib
import json
import math
from typing import Any
from runledger.core.errors import InvalidInputError

INPUT_HASH_LENGTH = 16

def _json_key(key: Any) -> str:
    # Same key coercions json.dumps applies, done up front so keys sort as strings
    if isinstance(key, str):
        return key
    if key is True:
        return "true"
    if key is False:
        return "false"
    if key is None:
        return "null"
    if isinstance(key, (int, float)):
        return json.dumps(_canonical(key))
    raise InvalidInputError(f"Unsupported key type in job input: {type(key).__name__}")

def _canonical(value: Any) -> Any:
    """Reduces a job input to plain JSON values with JSON number semantics.

    Integral floats become ints (1.0 and 1 are the same input) and
    non-finite floats become null. Anything that is not a JSON value
    (sets, bytes, arbitrary objects) is rejected rather than stringified,
    so the fingerprint never depends on per-process state.
    """
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, dict):
        return {_json_key(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    raise InvalidInputError(f"Job input is not JSON-serializable: {type(value).__name__}")

def serialize_input(value: Any) -> str:
    # No input and explicit None serialize alike
    if value is None:
        return ""
    return json.dumps(_canonical(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

def stable_input_hash(value: Any) -> str:
    """Returns a 16-hex-char SHA-256 prefix of a job input's canonical JSON.

    Raises:
        InvalidInputError: If the input is not made of JSON values.
    """
    digest = hashlib.sha256(serialize_input(value).encode("utf-8")).hexdigest()
    return digest[:INPUT_HASH_LENGTH]
