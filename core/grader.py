"""Batch grading: chunking, model calls, result merging and default filling."""

import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import config
from core.models import BatchOutcome, GradableItem, QuestionResult
from core.prompt_builder import build_batch_prompt
from core.recovery import recover_results
from services.gateway import ModelGateway
from utils.logger import get_logger

logger = get_logger()


def chunk_items(items: Sequence[GradableItem], size: int) -> Iterator[List[GradableItem]]:
    """Yields contiguous slices of at most `size` items, in order."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def find_result(recovered: Sequence[Any], item_id: str) -> Optional[QuestionResult]:
    """First recovered object whose question_id equals `item_id`."""
    for entry in recovered:
        if isinstance(entry, dict) and str(entry.get("question_id")) == item_id:
            return QuestionResult.from_dict(entry)
    return None


class Grader:
    """Grades a batch of items chunk by chunk through a model gateway.

    Chunks are processed strictly in order, one gateway call each. A failed
    chunk contributes no results and its items get default results; it
    never aborts the batch.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        chunk_size: int = config.DEFAULT_CHUNK_SIZE,
        chunk_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self.gateway = gateway
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self._sleep = sleep
        logger.debug(f"Grader initialized (chunk size {chunk_size}, delay {chunk_delay}s, model {gateway.model_name or 'n/a'}).")

    def _grade_chunk(self, exam_name: str, chunk: List[GradableItem], number: int) -> Tuple[List[Any], Optional[str]]:
        logger.info(f"Grading chunk {number} ({len(chunk)} questions)...")
        prompt = build_batch_prompt(exam_name, chunk)
        output = None
        try:
            output = self.gateway.invoke(prompt)
            parsed = recover_results(output, len(chunk))
        except Exception as e:
            logger.error(f"Chunk {number} grading error: {e}", exc_info=config.DEBUG)
            return [], output
        logger.info(f"Parsed {len(parsed)} results from chunk {number}.")
        return parsed, output

    def grade(self, exam_name: str, items: Sequence[GradableItem]) -> BatchOutcome:
        """Grades every item and returns exactly one result per item.

        Args:
            exam_name: Exam name used in the prompt.
            items: Items with unique ids, in answer key order.

        Returns:
            BatchOutcome covering every item, plus the raw output of every
            successful chunk for auditing.
        """
        recovered: List[Any] = []
        raw_parts: List[str] = []

        for index, chunk in enumerate(chunk_items(items, self.chunk_size)):
            if index and self.chunk_delay > 0:
                self._sleep(self.chunk_delay)
            number = index + 1
            parsed, output = self._grade_chunk(exam_name, chunk, number)
            if output is not None:
                raw_parts.append(f"--- CHUNK {number} ---\n{output}\n\n")
            recovered.extend(parsed)

        results: Dict[str, QuestionResult] = {}
        defaulted: List[str] = []
        for item in items:
            result = find_result(recovered, item.id)
            if result is None:
                result = QuestionResult.default_for(item)
                defaulted.append(item.id)
            results[item.id] = result

        if defaulted:
            logger.warning(f"{len(defaulted)} of {len(items)} questions received default results: {', '.join(defaulted)}")
        logger.info(f"Batch complete: {len(results)} results for exam '{exam_name}'.")
        return BatchOutcome(results=results, raw_output="".join(raw_parts), defaulted_ids=defaulted)
