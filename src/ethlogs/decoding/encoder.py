"""Build synthetic logs from parameter values (inverse of the decoder)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ethlogs.core.models import LogRecord
from ethlogs.decoding.specs import EventSpec
from ethlogs.decoding.types import encode_topic, topic_hex


def encode_log(
    spec: EventSpec,
    values: Mapping[str, Any],
    *,
    address: str = "0x" + "00" * 20,
    block_number: int | None = None,
    block_hash: str | None = None,
    transaction_hash: str | None = None,
    log_index: int | None = None,
) -> LogRecord:
    """Encode `values` (by parameter name) as the log `spec` would emit."""
    missing = [p.name for p in spec.parameters if p.name not in values]
    if missing:
        raise ValueError(f"{spec.name}: missing values for {missing}")

    topics = [] if spec.anonymous else [spec.topic0]
    data = b""
    for p in spec.parameters:
        if p.indexed:
            topics.append(topic_hex(encode_topic(p.abi_type, values[p.name])))
        else:
            data += p.abi_type.encode(values[p.name])

    return LogRecord(
        address=address.lower(),
        topics=tuple(topics),
        data=data,
        block_number=block_number,
        block_hash=block_hash,
        transaction_hash=transaction_hash,
        log_index=log_index,
    )
