"""
Analysis Dispatcher

Sends one built request to the model and shapes the answer:
free text for most operations, a validated list of ComparisonRow when the
request carries an output schema. One call per request, no retries.
"""

import json
import logging
import os
import re
from typing import Any, List, Optional, Union

from anthropic import AsyncAnthropic
from pydantic import TypeAdapter, ValidationError

from legal_assistant.errors import AnalysisFailedError, MalformedResponseError
from legal_assistant.models import ComparisonRow
from legal_assistant.processors.prompt_builder import AnalysisRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL = 'claude-sonnet-4-5'
DEFAULT_MAX_TOKENS = 4000

_rows_adapter = TypeAdapter(List[ComparisonRow])


class AnalysisDispatcher:
    """Model caller. The client is injected so tests can substitute the transport."""

    def __init__(self, client: Any, model: Optional[str] = None, max_tokens: int = DEFAULT_MAX_TOKENS):
        self.client = client
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    @classmethod
    def from_api_key(cls, api_key: Optional[str], model: Optional[str] = None) -> 'AnalysisDispatcher':
        return cls(AsyncAnthropic(api_key=api_key), model=model or os.getenv('LEGAL_ASSISTANT_MODEL'))

    async def __aenter__(self) -> 'AnalysisDispatcher':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the client's connection pool; must run on the loop that used it."""
        await self.client.close()

    async def dispatch(self, request: AnalysisRequest) -> Union[str, List[ComparisonRow]]:
        kwargs = {}
        if request.output_schema is not None:
            kwargs['tools'] = [request.output_schema]
            kwargs['tool_choice'] = {'type': 'tool', 'name': request.output_schema['name']}

        logger.info("Dispatching %s (%d parts)", request.operation.value, len(request.parts))
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": request.parts}],
                **kwargs,
            )
        except Exception as e:
            logger.exception("Model call failed (%s)", request.operation.value)
            raise AnalysisFailedError(request.failure_message, detail=str(e)) from e

        if request.output_schema is None:
            return response_text(response)
        return parse_comparison_rows(response, request.failure_message)


def response_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return ''.join(
        block.text for block in response.content if getattr(block, 'type', None) == 'text'
    ).strip()


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith('```'):
        text = re.sub(r'^```\w*\n?', '', text)
        text = re.sub(r'\n?```$', '', text)
    return text


def parse_comparison_rows(response: Any, failure_message: str) -> List[ComparisonRow]:
    """Decode the comparison table from a forced tool call, or from a JSON text answer.

    Anything that is not a list of complete five-field rows is rejected.
    """
    rows = None
    tool_blocks = [b for b in response.content if getattr(b, 'type', None) == 'tool_use']
    if tool_blocks:
        payload = tool_blocks[0].input
        if isinstance(payload, dict):
            rows = payload.get('rows')
    else:
        text = _strip_fences(response_text(response))
        try:
            rows = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Comparison response is not JSON: %s", e)
            raise MalformedResponseError(failure_message, detail=str(e)) from e

    if not isinstance(rows, list):
        logger.error("Comparison response has no row list: %r", rows)
        raise MalformedResponseError(failure_message, detail='missing row list')

    try:
        return _rows_adapter.validate_python(rows)
    except ValidationError as e:
        logger.error("Comparison rows failed validation: %s", e)
        raise MalformedResponseError(failure_message, detail=str(e)) from e
