"""Batch splitting.

Batches never span documents so that the module identifier in the prompt
stays homogeneous within a request.
"""

from typing import Sequence

from ..models.batch import Batch
from ..models.unit import MaskedUnit


def split(
    units: Sequence[MaskedUnit],
    batch_size: int,
    document_id: str,
    module_id: str = "unknown_mod",
) -> list[Batch]:
    """Chunk one document's units into ordered fixed-size batches.

    Args:
        units: Masked units of a single document, in extraction order
        batch_size: Maximum units per batch
        document_id: Document the units belong to
        module_id: Module identifier used for prompt context

    Returns:
        Batches in order; empty input yields no batches
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    return [
        Batch(
            document_id=document_id,
            module_id=module_id,
            batch_index=index,
            units=tuple(units[start:start + batch_size]),
        )
        for index, start in enumerate(range(0, len(units), batch_size))
    ]
