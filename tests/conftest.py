from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIConnectionError

from legal_assistant.processors.analysis_dispatcher import AnalysisDispatcher
from legal_assistant.processors.prompt_builder import Operation

# A phrase that only appears in each operation's instruction text
OPERATION_MARKERS = {
    Operation.EVALUATE_EVIDENCE: '예리한 법률 분석가',
    Operation.SUMMARIZE_DOCUMENT: '사건의 핵심 내용을 요약',
    Operation.CASE_SUMMARY: '각 당사자의 핵심 입장',
    Operation.COUNTER_ARGUMENTS: '유능한 변호사',
    Operation.STRUCTURE_ARGUMENTS: '# 나의 주장 (요약)',
}


def text_response(text):
    return SimpleNamespace(content=[SimpleNamespace(type='text', text=text)])


def tool_response(rows):
    return SimpleNamespace(
        content=[SimpleNamespace(type='tool_use', name='record_comparison_table', input={'rows': rows})]
    )


def connection_error():
    return APIConnectionError(request=httpx.Request('POST', 'https://api.anthropic.com/v1/messages'))


def classify(call):
    if 'tools' in call:
        return Operation.COMPARISON_TABLE
    first_text = call['messages'][0]['content'][0]['text']
    for operation, marker in OPERATION_MARKERS.items():
        if marker in first_text:
            return operation
    raise AssertionError(f"unrecognized request: {first_text[:80]}")


class FakeMessages:
    """Stands in for client.messages; answers per operation, records every call."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        answer = self.answers[classify(kwargs)]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def operations(self):
        return [classify(call) for call in self.calls]


class FakeClient:
    """Stands in for AsyncAnthropic: a messages endpoint and a closable connection pool."""

    def __init__(self, messages):
        self.messages = messages
        self.closed = False

    async def close(self):
        self.closed = True

    def is_closed(self):
        return self.closed


SAMPLE_ROW = {
    'issue': '계약 위반 여부',
    'plaintiff_argument': '피고가 대금을 지급하지 않았다',
    'plaintiff_evidence': '계약서',
    'defendant_argument': '물품에 하자가 있었다',
    'defendant_evidence': '사진',
}


def default_answers():
    return {
        Operation.EVALUATE_EVIDENCE: text_response('증거 평가 결과'),
        Operation.SUMMARIZE_DOCUMENT: text_response('요약 결과'),
        Operation.CASE_SUMMARY: text_response('사건 요약 결과'),
        Operation.COMPARISON_TABLE: tool_response([SAMPLE_ROW]),
        Operation.COUNTER_ARGUMENTS: text_response('반박 결과'),
        Operation.STRUCTURE_ARGUMENTS: text_response('정리 결과'),
    }


@pytest.fixture
def sample_row():
    return dict(SAMPLE_ROW)


@pytest.fixture
def make_dispatcher():
    """Factory: make_dispatcher(**overrides) -> (dispatcher, fake messages endpoint).

    Overrides are keyed by Operation value, e.g. counter_arguments=connection_error().
    """
    def factory(**overrides):
        answers = default_answers()
        for name, answer in overrides.items():
            answers[Operation(name)] = answer
        messages = FakeMessages(answers)
        dispatcher = AnalysisDispatcher(FakeClient(messages), model='test-model')
        return dispatcher, messages
    return factory


@pytest.fixture
def text_reply():
    return text_response


@pytest.fixture
def tool_reply():
    return tool_response


@pytest.fixture
def provider_error():
    return connection_error
