"""Translation pipeline components.

- TokenProtector: masks protected tokens before dispatch and restores them
- split: groups a document's units into ordered batches
- PromptEngine: renders the system prompt and the JSON payload
- OutputProcessor: strict parsing of the model's JSON array reply
- TranslationDispatcher: bounded-concurrency dispatch with retry/backoff
- IncrementalMerger: partitions against accepted records and merges results
- TranslationPipeline: runs the flow for one document
"""

from .protector import TokenProtector
from .batcher import split
from .prompt_engine import PromptEngine
from .output_processor import OutputProcessor
from .dispatcher import TranslationDispatcher, is_transient
from .merger import IncrementalMerger, Partition, build_accepted, baseline_unchanged
from .pipeline import TranslationPipeline, DocumentResult

__all__ = [
    "TokenProtector",
    "split",
    "PromptEngine",
    "OutputProcessor",
    "TranslationDispatcher",
    "is_transient",
    "IncrementalMerger",
    "Partition",
    "build_accepted",
    "baseline_unchanged",
    "TranslationPipeline",
    "DocumentResult",
]
